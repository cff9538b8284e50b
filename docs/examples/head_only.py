"""Example script to write out a rules file without its chain specific sections"""
import click

from fragrules import read_rules, RulesError
from fragrules.writer import RuleDocumentWriter


@click.command('head_only')
@click.argument('inpath', type=click.Path(exists=True))
@click.option("--compat", is_flag=True, default=False)
def main(inpath, compat: bool = False):
    """Read a rules file and write its [GENERAL] and [HEAD] sections to STDOUT"""
    click.echo(f"Opening {inpath}", err=True)
    try:
        rules = read_rules(inpath, compatibility_mode=compat)
    except RulesError as err:
        click.echo(f"{err}", err=True)
        raise click.Abort()

    stream = click.get_text_stream('stdout')
    writer = RuleDocumentWriter(stream)
    writer.write_rules(rules.general_settings, rules.head_fragments.values(), rules.head_intensities)
    writer.close()


if __name__ == "__main__":
    main.main()
