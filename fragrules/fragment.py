"""Fragment definitions of the ``!FRAGMENTS`` subsections and their compilation."""
import enum
import logging
import re

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from fragrules import const
from fragrules.formula import ChainType, FormulaValidator
from fragrules.general import GeneralSettings
from fragrules.sections import Section
from fragrules.utils import RulesError, split_key_value, strict_int

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class MandatoryLevel(enum.Enum):
    """How strictly a fragment has to be detected for an identification"""

    false = "false"
    true = "true"
    other = "other"
    quant = "quant"
    class_ = "class"

    @property
    def literal(self) -> str:
        return self.value


_MANDATORY_ALIASES = {
    "true": MandatoryLevel.true,
    "yes": MandatoryLevel.true,
    "false": MandatoryLevel.false,
    "no": MandatoryLevel.false,
    "other": MandatoryLevel.other,
    "quant": MandatoryLevel.quant,
    "class": MandatoryLevel.class_,
}


def parse_mandatory(value: str, section: Section, line_number: Optional[int] = None,
                    fragment: bool = True) -> MandatoryLevel:
    """
    Read the value of a ``mandatory`` key.

    Intensity rules (``fragment=False``) accept only the boolean-like literals.
    """
    level = _MANDATORY_ALIASES.get(value.lower())
    if fragment:
        if level is MandatoryLevel.class_ and section is not Section.chains:
            raise RulesError(
                f'The value "class" of {const.FRAGMENT_MANDATORY} is allowed in the '
                f"{const.CHAINS_SECTION} section only!", line_number)
        if level is None:
            raise RulesError(
                f'The value of {const.FRAGMENT_MANDATORY} can contain the values "true","false","yes","no",'
                f'"other","quant" and "class" only!', line_number)
    elif level not in (MandatoryLevel.true, MandatoryLevel.false):
        raise RulesError(
            f'The value of {const.FRAGMENT_MANDATORY} can contain the values "true","false","yes" and "no" only!',
            line_number)
    return level


def tokenize_line(line: str, compatibility_mode: bool = False) -> List[str]:
    """
    Split a subsection entry into its ``key=value`` tokens.

    By default tokens are separated by any whitespace. In compatibility mode only
    tabs separate tokens, so that values may contain spaces.
    """
    if compatibility_mode:
        tokens = line.split("\t")
    else:
        tokens = re.split(r"\s+", line)
    return [token.strip() for token in tokens if token.strip()]


@dataclass(frozen=True)
class FragmentRule:
    """
    A fragment that is expected in the spectrum of a lipid class.

    Attributes
    ----------
    name : str
        The name, unique among all fragments of a rules file
    formula : str
        The formula as written in the rules file, possibly referencing the precursor,
        a chain, or previously defined fragments
    charge : int
        The charge state of the fragment
    ms_level : int
        The MS level the fragment is expected at
    mandatory_level : :class:`MandatoryLevel`
        How strictly the fragment has to be detected
    chain_type : :class:`~.ChainType`, optional
        The type of chain a ``[CHAINS]`` fragment is built from
    section : :class:`~.Section`
        The section the fragment was defined in
    """

    name: str
    formula: str
    charge: int = 1
    ms_level: int = 2
    mandatory_level: MandatoryLevel = MandatoryLevel.false
    chain_type: Optional[ChainType] = None
    section: Section = Section.head

    @property
    def mandatory(self) -> bool:
        return self.mandatory_level in (MandatoryLevel.true, MandatoryLevel.quant, MandatoryLevel.class_)

    @property
    def from_other_species(self) -> bool:
        return self.mandatory_level is MandatoryLevel.other

    @property
    def contains_precursor(self) -> bool:
        return const.PRECURSOR_NAME in self.formula

    @property
    def is_chain_fragment(self) -> bool:
        return self.section is Section.chains


def check_name_unique(name: str, section: Section, head_fragments: Mapping[str, FragmentRule],
                      chain_fragments: Mapping[str, FragmentRule], line_number: Optional[int] = None):
    """Reject ``name`` if a fragment of that name exists in either namespace."""
    for earlier, fragments in ((Section.head, head_fragments), (Section.chains, chain_fragments)):
        if name in fragments:
            raise RulesError(
                f'The fragment "{name}" of the {section.header} section was already defined in the '
                f"{earlier.header} section! Names in rules must be unique all over the file!", line_number)


def chain_quotas(settings: GeneralSettings) -> Dict[ChainType, int]:
    """How many chains of each type a species of the class carries."""
    return {
        ChainType.acyl: settings.amount_of_acyl_chains,
        ChainType.alkyl: settings.alkyl_chains,
        ChainType.alkenyl: settings.alkenyl_chains,
        ChainType.lcb: settings.amount_of_lcbs,
    }


def check_chain_quota(chain_type: Optional[ChainType], settings: GeneralSettings,
                      line_number: Optional[int] = None):
    """
    Reject a chain fragment whose chain type has no slot left according to the
    ``[GENERAL]`` chain counts.
    """
    if chain_type is None:
        return
    if settings.amount_of_chains is None:
        raise RulesError(
            f"The property {const.AMOUNT_OF_CHAINS} must be declared in the {const.GENERAL_SECTION} "
            f"section before any fragment of the {const.CHAINS_SECTION} section!", line_number)
    quotas = chain_quotas(settings)
    if quotas[chain_type] < 1:
        permitted = "/".join(ct.token for ct, count in quotas.items() if count > 0) or "no chain"
        raise RulesError(
            f"The chain type {chain_type.token} is not allowed according to the general settings! "
            f"Only {permitted} is allowed!", line_number)


def _parse_int(key: str, value: str, line_number: Optional[int]) -> int:
    try:
        return strict_int(value)
    except ValueError:
        raise RulesError(f'The value of {key} must be integer, the value "{value}" is not!', line_number) from None


class FragmentRuleCompiler:
    """
    Turns the entries of ``!FRAGMENTS`` subsections into :class:`FragmentRule` objects.

    Parameters
    ----------
    formula_validator : :class:`~.FormulaValidator`, optional
        Checks the formulas. A default validator is created if omitted.
    compatibility_mode : bool
        Whether to split entries at tabs only
    """

    formula_validator: FormulaValidator
    compatibility_mode: bool

    def __init__(self, formula_validator: Optional[FormulaValidator] = None, compatibility_mode: bool = False):
        if formula_validator is None:
            formula_validator = FormulaValidator()
        self.formula_validator = formula_validator
        self.compatibility_mode = compatibility_mode

    def compile(self, line: str, section: Section,
                head_fragments: Mapping[str, FragmentRule],
                chain_fragments: Mapping[str, FragmentRule],
                settings: GeneralSettings,
                line_number: Optional[int] = None) -> FragmentRule:
        """
        Compile one fragment entry.

        The fragments passed in are those defined so far, which are the only ones
        the formula may reference.

        Parameters
        ----------
        line : str
            The entry, e.g. ``Name=NL_PC Formula=$PRECURSOR-C5H14NO4P Charge=1 MSLevel=2``
        section : :class:`~.Section`
            Either :attr:`Section.head` or :attr:`Section.chains`
        head_fragments : Mapping
            Read-only view of the head fragments defined so far
        chain_fragments : Mapping
            Read-only view of the chain fragments defined so far
        settings : :class:`~.GeneralSettings`
            The settings read so far, used for the chain type quotas
        line_number : int, optional
            For error messages

        Returns
        -------
        :class:`FragmentRule`
        """
        name = None
        formula = None
        charge = 1
        ms_level = 2
        mandatory = MandatoryLevel.false
        for token in tokenize_line(line, self.compatibility_mode):
            key, value = split_key_value(token, line_number, f"The {const.FRAGMENTS_SUBSECTION} entry")
            lowered = key.lower()
            if lowered == const.FRAGMENT_NAME.lower():
                name = value
            elif lowered == const.FRAGMENT_FORMULA.lower():
                formula = value
            elif lowered == const.FRAGMENT_CHARGE.lower():
                charge = _parse_int(const.FRAGMENT_CHARGE, value, line_number)
            elif lowered == const.FRAGMENT_MS_LEVEL.lower():
                ms_level = _parse_int(const.FRAGMENT_MS_LEVEL, value, line_number)
            elif lowered == const.FRAGMENT_MANDATORY.lower():
                mandatory = parse_mandatory(value, section, line_number)
            else:
                raise RulesError(
                    f'The section {const.FRAGMENTS_SUBSECTION} does not support the key "{key}"!', line_number)

        if not name:
            raise RulesError(
                f'A {const.FRAGMENTS_SUBSECTION} entry must contain a key called "{const.FRAGMENT_NAME}"!',
                line_number)
        if "$" in name or "=" in name:
            raise RulesError(
                f'The key {const.FRAGMENT_NAME} does not support values containing "$" or "=", '
                f'the value "{name}" does!', line_number)
        check_name_unique(name, section, head_fragments, chain_fragments, line_number)
        if not formula:
            raise RulesError(
                f'A {const.FRAGMENTS_SUBSECTION} entry must contain a key called "{const.FRAGMENT_FORMULA}"!',
                line_number)
        try:
            analysis = self.formula_validator.analyze(formula, head_fragments, chain_fragments)
        except RulesError as err:
            raise err.at_line(line_number) from None
        if charge < 1:
            raise RulesError(
                f'The charge state of an analyte must be greater or equal 1, the value "{charge}" is not!',
                line_number)

        chain_type = None
        if section is Section.chains:
            chain_type = analysis.chain_type
            check_chain_quota(chain_type, settings, line_number)
        rule = FragmentRule(name, formula, charge, ms_level, mandatory, chain_type, section)
        logger.debug("Compiled fragment %r of %s at line %r", name, section.header, line_number)
        return rule
