"""
The typed key/value store behind the ``[GENERAL]`` section of a rules file.

Every recognized key is bound to a :class:`SettingDefinition` which validates the
text found in the file and converts it into a typed value. The text itself is kept
verbatim so that it can be written back unchanged.
"""
import enum
import logging
import re

from dataclasses import dataclass
from fractions import Fraction
from typing import (
    Any, Callable, Dict, Generic, Iterator, List, Mapping, NamedTuple, Optional, Tuple, TypeVar
)

from fragrules import const
from fragrules.utils import (
    FLOAT_PATTERN, CaseInsensitiveDict, RulesError, split_key_value, strict_float, strict_int
)

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

T = TypeVar("T")

PERMILLE = "‰"


class IdentificationOrder(enum.IntEnum):
    """Whether MS1 or MSn evidence is used first when identifying species"""

    ms1_first = 0
    msn_first = 1
    msn_only = 2

    @property
    def literal(self) -> str:
        return _ORDER_LITERALS[self]

    @classmethod
    def from_literal(cls, text: str) -> "IdentificationOrder":
        for order, literal in _ORDER_LITERALS.items():
            if literal.lower() == text.lower():
                return order
        raise ValueError(text)


_ORDER_LITERALS = {
    IdentificationOrder.ms1_first: const.MS1_FIRST,
    IdentificationOrder.msn_first: const.MSN_FIRST,
    IdentificationOrder.msn_only: const.MSN_ONLY,
}


class OtherAdductRequirement(NamedTuple):
    """
    The adducts of the same species that must be detected, too.

    If ``require_all`` is :const:`True`, every listed adduct has to be found,
    otherwise one of them is enough.
    """

    adducts: Tuple[str, ...]
    require_all: bool = True

    def __str__(self):
        separator = "," if self.require_all else "|"
        return separator.join(self.adducts)


def parse_non_negative_int(key: str, value: str) -> int:
    try:
        number = strict_int(value)
    except ValueError:
        raise RulesError(f'The value of {key} must be integer, the value "{value}" is not!') from None
    if number < 0:
        raise RulesError(f'The value of {key} must not be negative, the value "{value}" is not!')
    return number


def parse_library_name(key: str, value: str) -> str:
    if not value.lower().endswith(const.CHAIN_LIBRARY_SUFFIXES):
        suffixes = " or ".join(const.CHAIN_LIBRARY_SUFFIXES)
        raise RulesError(f'The {key} must be an Excel file ending with {suffixes}, the value "{value}" is not!')
    return value


def parse_name_pattern(key: str, value: str) -> "re.Pattern":
    try:
        pattern = re.compile(value)
    except re.error as err:
        raise RulesError(f'The value of {key} "{value}" is not a valid regular expression: {err}!') from None
    if "(" not in value or ")" not in value:
        raise RulesError(
            f'The value of {key} "{value}" must contain a group in brackets "(" and ")" that extracts the value!')
    return pattern


def parse_fraction(key: str, value: str) -> float:
    """
    Read a fraction, a percent or a permille value which must lie in ``[0, 1)``.

    A trailing ``%`` divides by 100, a trailing per-mille sign divides by 1000.
    """
    text = value
    divisor = 1
    if text.endswith("%"):
        text = text[:-1]
        divisor = 100
    elif text.endswith(PERMILLE):
        text = text[:-1]
        divisor = 1000
    try:
        if not FLOAT_PATTERN.fullmatch(text.strip()):
            raise ValueError(text)
        fraction = Fraction(text.strip()) / divisor
    except ValueError:
        raise RulesError(f'The value of {key} must be double format, the value "{text}" is not!') from None
    if fraction < 0:
        raise RulesError(f'The {key} must not be negative, the value "{text}" is not!')
    if fraction >= 1:
        raise RulesError(f'The {key} must not be bigger than 100%, the value "{value}" is not!')
    return float(fraction)


def parse_boolean(key: str, value: str) -> bool:
    return value.lower() in ("true", "yes")


def parse_float(key: str, value: str) -> float:
    try:
        return strict_float(value)
    except ValueError:
        raise RulesError(f'The value of {key} must be float format, the value "{value}" is not!') from None


def parse_non_negative_float(key: str, value: str) -> float:
    number = parse_float(key, value)
    if number < 0:
        raise RulesError(f'The value of {key} must not be negative, the value "{value}" is not!')
    return number


def parse_identification_order(key: str, value: str) -> IdentificationOrder:
    try:
        return IdentificationOrder.from_literal(value)
    except ValueError:
        raise RulesError(
            f'The value of {key} "{value}" is not supported! '
            f"Only {const.MS1_FIRST}/{const.MSN_FIRST}/{const.MSN_ONLY} is allowed!") from None


def parse_other_adducts(key: str, value: str) -> OtherAdductRequirement:
    if "," in value and "|" in value:
        raise RulesError(f'The value of {key} must not mix "," and "|", the value "{value}" does!')
    require_all = "|" not in value
    adducts = tuple(part.strip() for part in re.split(r"[,|]", value))
    if not all(adducts):
        raise RulesError(f'The value of {key} must not contain empty adduct names, the value "{value}" does!')
    return OtherAdductRequirement(adducts, require_all)


def format_boolean(value: Any) -> str:
    return "true" if value else "false"


def format_pattern(value: Any) -> str:
    if isinstance(value, re.Pattern):
        return value.pattern
    return str(value)


def format_float(value: Any) -> str:
    return repr(float(value))


def format_order(value: Any) -> str:
    return IdentificationOrder(value).literal


@dataclass(frozen=True)
class SettingDefinition:
    """
    How one ``[GENERAL]`` key is validated, converted and formatted.

    Attributes
    ----------
    key : str
        The canonical spelling of the key
    parse : Callable
        Takes the key and the text value and returns the typed value, raising
        :class:`~.RulesError` for invalid text
    format : Callable
        Turns a typed value back into text
    default : object
        The typed value used when the key is absent
    """

    key: str
    parse: Callable[[str, str], Any]
    format: Callable[[Any], str] = str
    default: Any = None

    def __call__(self, value: str) -> Any:
        return self.parse(self.key, value)


# in the order the settings are written out
SETTING_DEFINITIONS: Tuple[SettingDefinition, ...] = (
    SettingDefinition(const.AMOUNT_OF_CHAINS, parse_non_negative_int),
    SettingDefinition(const.CHAIN_LIBRARY, parse_library_name),
    SettingDefinition(const.LCB_LIBRARY, parse_library_name),
    SettingDefinition(const.CATOMS_FROM_NAME, parse_name_pattern, format_pattern),
    SettingDefinition(const.DOUBLE_BONDS_FROM_NAME, parse_name_pattern, format_pattern),
    SettingDefinition(const.ALKYL_CHAINS, parse_non_negative_int, default=0),
    SettingDefinition(const.ALKENYL_CHAINS, parse_non_negative_int, default=0),
    SettingDefinition(const.AMOUNT_OF_LCBS, parse_non_negative_int, default=0),
    SettingDefinition(const.BASE_PEAK_CUTOFF, parse_fraction, format_float, 0.0),
    SettingDefinition(const.CHAIN_CUTOFF, parse_fraction, format_float),
    SettingDefinition(const.SPECTRUM_COVERAGE, parse_fraction, format_float, 0.0),
    SettingDefinition(const.RT_POSTPROCESSING, parse_boolean, format_boolean, False),
    SettingDefinition(const.RT_PARALLEL_SERIES, parse_boolean, format_boolean, False),
    SettingDefinition(const.RT_MAX_DEVIATION, parse_float, format_float),
    SettingDefinition(const.SINGLE_CHAIN_IDENTIFICATION, parse_boolean, format_boolean, False),
    SettingDefinition(const.MS_IDENTIFICATION_ORDER, parse_identification_order, format_order,
                      IdentificationOrder.ms1_first),
    SettingDefinition(const.ENFORCE_PEAK_UNION_TIME, parse_float, format_float),
    SettingDefinition(const.IGNORE_POSITION_FOR_UNION, parse_boolean, format_boolean, False),
    SettingDefinition(const.CLASS_SPECIFIC_MS1_CUTOFF, parse_float, format_float),
    SettingDefinition(const.ADD_CHAIN_POSITIONS, parse_non_negative_int, default=0),
    SettingDefinition(const.ISOBAR_SC_EXCLUSION_RATIO, parse_float, format_float),
    SettingDefinition(const.ISOBAR_SC_FAR_EXCLUSION_RATIO, parse_float, format_float),
    SettingDefinition(const.ISOBAR_RT_DIFF, parse_float, format_float),
    SettingDefinition(const.VALID_ONLY_WITH_OTHER_ADDUCT, parse_other_adducts),
    SettingDefinition(const.OTHER_ADDUCT_VALIDITY_TOLERANCE, parse_non_negative_float, format_float),
    SettingDefinition(const.FORCE_OTHER_ADDUCT_VALIDITY, parse_boolean, format_boolean, False),
    SettingDefinition(const.CHOOSE_MORE_LIKELY_RT_WHEN_EQUAL, parse_boolean, format_boolean, False),
)

_DEFINITIONS_BY_KEY = CaseInsensitiveDict({d.key: d for d in SETTING_DEFINITIONS})


def get_definition(key: str) -> Optional[SettingDefinition]:
    """Find the definition of ``key`` regardless of its case."""
    return _DEFINITIONS_BY_KEY.get(key)


class GeneralSetting(Generic[T]):
    """
    A descriptor exposing the typed value of one ``[GENERAL]`` key on
    :class:`GeneralSettings`. Assignment validates and stores the formatted text.
    """

    key: str
    name: str

    def __init__(self, key: str):
        self.key = key
        self.name = key

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, obj: "GeneralSettings", objtype=None) -> T:
        if obj is None:
            return self
        return obj.get_typed(self.key)

    def __set__(self, obj: "GeneralSettings", value: T):
        obj.set_value(self.key, value)

    def __delete__(self, obj: "GeneralSettings"):
        obj.remove(self.key)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.key!r})"


class GeneralSettings(Mapping[str, str]):
    """
    The settings of the ``[GENERAL]`` section.

    As a :class:`Mapping` this object maps the canonical spelling of each key that
    was set to the text it was set with. Typed values are exposed through the
    descriptor attributes, e.g. :attr:`amount_of_chains`, and through :meth:`get_typed`,
    which falls back to the documented default of an absent key.

    Parameters
    ----------
    values : Mapping, optional
        Initial settings. String values are parsed as if read from a file, other
        values are formatted first.
    """

    _raw: Dict[str, str]
    _typed: Dict[str, Any]
    _locked: bool = False

    amount_of_chains = GeneralSetting[int](const.AMOUNT_OF_CHAINS)
    alkyl_chains = GeneralSetting[int](const.ALKYL_CHAINS)
    alkenyl_chains = GeneralSetting[int](const.ALKENYL_CHAINS)
    amount_of_lcbs = GeneralSetting[int](const.AMOUNT_OF_LCBS)
    add_chain_positions = GeneralSetting[int](const.ADD_CHAIN_POSITIONS)
    chain_library = GeneralSetting[str](const.CHAIN_LIBRARY)
    lcb_library = GeneralSetting[str](const.LCB_LIBRARY)
    carbon_atoms_pattern = GeneralSetting["re.Pattern"](const.CATOMS_FROM_NAME)
    double_bonds_pattern = GeneralSetting["re.Pattern"](const.DOUBLE_BONDS_FROM_NAME)
    base_peak_cutoff = GeneralSetting[float](const.BASE_PEAK_CUTOFF)
    chain_cutoff = GeneralSetting[Optional[float]](const.CHAIN_CUTOFF)
    spectrum_coverage = GeneralSetting[float](const.SPECTRUM_COVERAGE)
    rt_postprocessing = GeneralSetting[bool](const.RT_POSTPROCESSING)
    rt_parallel_series = GeneralSetting[bool](const.RT_PARALLEL_SERIES)
    rt_max_deviation = GeneralSetting[Optional[float]](const.RT_MAX_DEVIATION)
    single_chain_identification = GeneralSetting[bool](const.SINGLE_CHAIN_IDENTIFICATION)
    identification_order = GeneralSetting[IdentificationOrder](const.MS_IDENTIFICATION_ORDER)
    enforce_peak_union_time = GeneralSetting[Optional[float]](const.ENFORCE_PEAK_UNION_TIME)
    ignore_position_for_union = GeneralSetting[bool](const.IGNORE_POSITION_FOR_UNION)
    class_specific_ms1_cutoff = GeneralSetting[Optional[float]](const.CLASS_SPECIFIC_MS1_CUTOFF)
    isobar_sc_exclusion_ratio = GeneralSetting[Optional[float]](const.ISOBAR_SC_EXCLUSION_RATIO)
    isobar_sc_far_exclusion_ratio = GeneralSetting[Optional[float]](const.ISOBAR_SC_FAR_EXCLUSION_RATIO)
    isobar_rt_diff = GeneralSetting[Optional[float]](const.ISOBAR_RT_DIFF)
    other_adducts = GeneralSetting[Optional[OtherAdductRequirement]](const.VALID_ONLY_WITH_OTHER_ADDUCT)
    other_adduct_tolerance = GeneralSetting[Optional[float]](const.OTHER_ADDUCT_VALIDITY_TOLERANCE)
    force_other_adduct_validity = GeneralSetting[bool](const.FORCE_OTHER_ADDUCT_VALIDITY)
    choose_more_likely_rt = GeneralSetting[bool](const.CHOOSE_MORE_LIKELY_RT_WHEN_EQUAL)

    def __init__(self, values: Optional[Mapping[str, Any]] = None, **kwargs):
        self._raw = {}
        self._typed = {}
        if values is not None:
            for key, value in values.items():
                self.set_value(key, value)
        for key, value in kwargs.items():
            self.set_value(key, value)

    def _definition_for(self, key: str, line_number: Optional[int] = None) -> SettingDefinition:
        definition = get_definition(key)
        if definition is None:
            raise RulesError(
                f"The section {const.GENERAL_SECTION} does not support the property {key}!", line_number)
        return definition

    def set_text(self, key: str, text: str, line_number: Optional[int] = None):
        """
        Validate ``text`` for ``key`` and store it.

        Raises
        ------
        :class:`~.RulesError`
            If ``key`` is not recognized or ``text`` is not valid for it
        """
        if self._locked:
            raise RulesError("The general settings of a finalized rule document cannot be changed!")
        definition = self._definition_for(key, line_number)
        try:
            value = definition(text)
        except RulesError as err:
            if line_number is None:
                raise
            raise err.at_line(line_number) from None
        self._raw[definition.key] = text
        self._typed[definition.key] = value

    def set_value(self, key: str, value: Any):
        """Store a value given either as text or as a typed value."""
        definition = self._definition_for(key)
        if value is None:
            self.remove(definition.key)
            return
        if not isinstance(value, str):
            value = definition.format(value)
        self.set_text(definition.key, value)

    def parse_line(self, line: str, line_number: Optional[int] = None):
        """Read one ``key=value`` line of the ``[GENERAL]`` section."""
        key, value = split_key_value(line, line_number, f"The {const.GENERAL_SECTION} section")
        self.set_text(key, value, line_number)

    def remove(self, key: str):
        if self._locked:
            raise RulesError("The general settings of a finalized rule document cannot be changed!")
        definition = self._definition_for(key)
        self._raw.pop(definition.key, None)
        self._typed.pop(definition.key, None)

    def get_typed(self, key: str) -> Any:
        """The typed value of ``key`` or its default if it is absent."""
        definition = self._definition_for(key)
        if definition.key in self._typed:
            return self._typed[definition.key]
        return definition.default

    def is_default(self, key: str) -> bool:
        """Whether ``key`` is absent or holds a value equal to its default."""
        definition = self._definition_for(key)
        if definition.key not in self._raw:
            return True
        return self._typed[definition.key] == definition.default

    def missing_required(self) -> List[str]:
        return [key for key in const.REQUIRED_GENERAL_KEYS if key not in self._raw]

    @property
    def amount_of_acyl_chains(self) -> int:
        return (self.amount_of_chains or 0) - self.alkyl_chains - self.alkenyl_chains - self.amount_of_lcbs

    @property
    def allowed_chain_positions(self) -> int:
        return (self.amount_of_chains or 0) + self.add_chain_positions

    def lock(self):
        """Make these settings read-only."""
        self._locked = True

    @property
    def locked(self) -> bool:
        return self._locked

    def copy(self) -> "GeneralSettings":
        dup = self.__class__()
        dup._raw = dict(self._raw)
        dup._typed = dict(self._typed)
        return dup

    def __getitem__(self, key: str) -> str:
        definition = get_definition(key)
        if definition is None:
            raise KeyError(key)
        return self._raw[definition.key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._raw)

    def __len__(self) -> int:
        return len(self._raw)

    def __repr__(self):
        return f"{self.__class__.__name__}({self._raw!r})"
