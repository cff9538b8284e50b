"""Command line tools for checking, reformatting and exporting fragmentation rules files"""
import logging
import sys

import click

from fragrules.parser import FragRuleParser
from fragrules.tables import write_csv, write_xlsx
from fragrules.utils import RulesError
from fragrules.writer import RuleDocumentWriter

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def _read(path: str, compat: bool):
    parser = FragRuleParser(compatibility_mode=compat)
    try:
        return parser.parse(path)
    except RulesError as err:
        click.echo(f"{path}: {err}", err=True)
        raise click.Abort()


@click.group("fragrules")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log debugging messages")
def main(verbose: bool = False):
    """Read and write lipid fragmentation rules files"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command("check")
@click.argument("rule_files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--compat", is_flag=True, default=False, help="Split entries at tabs only")
def check(rule_files, compat: bool = False):
    """Compile each rules file and report the first violation, if any"""
    failed = 0
    parser = FragRuleParser(compatibility_mode=compat)
    for path in rule_files:
        try:
            document = parser.parse(path)
        except RulesError as err:
            failed += 1
            click.echo(f"{path}: {err}", err=True)
            continue
        click.echo(
            f"{path}: OK ({len(document.head_fragments)} head fragments, "
            f"{len(document.chain_fragments)} chain fragments, "
            f"{len(list(document.iter_intensity_rules()))} intensity rules)")
    if failed:
        logger.info("%d of %d rules files are invalid", failed, len(rule_files))
        raise click.Abort()


@main.command("format")
@click.argument("rule_file", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False, writable=True), default=None,
              help="Write to this file instead of STDOUT")
@click.option("--compat", is_flag=True, default=False, help="Split entries at tabs only")
def format_rules(rule_file, output=None, compat: bool = False):
    """Write a rules file back out in canonical form"""
    document = _read(rule_file, compat)
    if output is None:
        stream = click.get_text_stream("stdout")
        writer = RuleDocumentWriter(stream)
    else:
        writer = RuleDocumentWriter(output)
    with writer:
        writer.write_document(document)


@main.command("export")
@click.argument("outpath", type=click.Path(dir_okay=False, writable=True))
@click.argument("rule_files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("-f", "--format", "table_format", type=click.Choice(["xlsx", "csv"]), default=None,
              help="The table format, inferred from OUTPATH if omitted")
@click.option("--compat", is_flag=True, default=False, help="Split entries at tabs only")
def export(outpath, rule_files, table_format=None, compat: bool = False):
    """Export the fragments and intensity rules of rules files as a table"""
    if table_format is None:
        table_format = "csv" if outpath.lower().endswith(".csv") else "xlsx"
    documents = [_read(path, compat) for path in rule_files]
    logger.info("Writing %d rule sets to %s", len(documents), outpath)
    if table_format == "xlsx":
        write_xlsx(outpath, documents)
    else:
        write_csv(outpath, documents)


if __name__ == "__main__":
    main.main()
