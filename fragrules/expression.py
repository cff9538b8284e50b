"""
Intensity rules and the compiler for their comparison equations.

An equation such as ``2*FragA[1]+FragB>FragC/3`` compares two weighted sums of
fragment intensities. Each side is broken into :class:`FragmentTerm` objects by
repeatedly locating a declared fragment name and scanning the text around it for
its sign, multiplier and chain position. The scanning steps are plain functions
returning the extracted part together with the text that is left, so they can be
used on their own.
"""
import logging
import re

from dataclasses import dataclass, replace
from decimal import Decimal
from fractions import Fraction
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from fragrules import const
from fragrules.fragment import MandatoryLevel, parse_mandatory, tokenize_line
from fragrules.general import GeneralSettings
from fragrules.sections import Section
from fragrules.utils import RulesError, split_key_value, strict_int

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

BASEPEAK_PATTERN = re.compile(r"\$?BASEPEAK")
NUMBER_PATTERN = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?", re.ASCII)

_SCAN_CHARS = ".*/ []"

EQUATION = f'An "{const.INTENSITY_EQUATION}"'


@dataclass(frozen=True)
class FragmentTerm:
    """
    One weighted fragment intensity of a comparison.

    Attributes
    ----------
    fragment_name : str
        A declared fragment name or :data:`~.const.BASEPEAK_NAME`
    multiplier : :class:`fractions.Fraction`
        The factor the intensity is weighted with. Divisions are stored as their reciprocal.
    multiplier_text : str
        The multiplier as written, or the decimal form of a reciprocal
    positive : bool
        Whether the weighted intensity is added or subtracted
    position : int
        The 1-based chain position the fragment refers to, or 0 if unspecified
    """

    fragment_name: str
    multiplier: Fraction = Fraction(1)
    multiplier_text: str = "1"
    positive: bool = True
    position: int = 0

    @property
    def is_base_peak(self) -> bool:
        return self.fragment_name == const.BASEPEAK_NAME

    @property
    def signed_multiplier(self) -> Fraction:
        return self.multiplier if self.positive else -self.multiplier


@dataclass(frozen=True)
class ComparisonExpression:
    """
    One side of a comparison: a signed, weighted sum of fragment intensities,
    optionally scaled as a whole by the factor applied to a bracketed expression.
    """

    terms: Tuple[FragmentTerm, ...] = ()
    global_multiplier: Fraction = Fraction(1)
    global_multiplier_text: str = "1"

    @property
    def position(self) -> int:
        for term in self.terms:
            if not term.is_base_peak:
                return term.position
        return 0

    @property
    def fragment_names(self) -> List[str]:
        return [term.fragment_name for term in self.terms]

    @property
    def is_absolute(self) -> bool:
        """Whether this side is a fraction of the base peak only"""
        return bool(self.terms) and all(term.is_base_peak for term in self.terms)

    def contains_fragment(self, name: str) -> bool:
        return any(term.fragment_name == name for term in self.terms)

    def evaluate(self, intensities: Mapping[str, float]) -> float:
        """
        Compute the value of this side for the given fragment intensities.

        Fragments missing from ``intensities`` contribute nothing. The base peak
        intensity is looked up under :data:`~.const.BASEPEAK_NAME`.
        """
        total = 0.0
        for term in self.terms:
            total += float(term.signed_multiplier) * intensities.get(term.fragment_name, 0.0)
        return float(self.global_multiplier) * total

    def __len__(self):
        return len(self.terms)

    def __iter__(self):
        return iter(self.terms)


@dataclass(frozen=True)
class IntensityRule:
    """
    A relation between fragment intensities that has to hold for an identification.

    Attributes
    ----------
    section : :class:`~.Section`
        The section the rule was defined in
    source_equation : str
        The equation as written in the rules file
    bigger_expression : :class:`ComparisonExpression`
        The side that has to be more intense, wherever it stands in the equation
    smaller_expression : :class:`ComparisonExpression`
        The side that has to be less intense
    mandatory : bool
        Whether the rule must be fulfilled
    or_rule : bool
        Whether the rule lists alternative fragments of which one has to be found
    """

    section: Section
    source_equation: str
    bigger_expression: ComparisonExpression
    smaller_expression: ComparisonExpression
    mandatory: bool = False
    or_rule: bool = False

    @property
    def identifier(self) -> str:
        return self.source_equation

    @property
    def fragment_names(self) -> List[str]:
        names = []
        for name in self.bigger_expression.fragment_names + self.smaller_expression.fragment_names:
            if name not in names:
                names.append(name)
        return names

    @property
    def has_position(self) -> bool:
        return any(term.position for term in self.bigger_expression) or \
            any(term.position for term in self.smaller_expression)

    def is_fulfilled(self, intensities: Mapping[str, float]) -> bool:
        if self.or_rule:
            return any(intensities.get(name, 0.0) > 0 for name in self.bigger_expression.fragment_names)
        return self.bigger_expression.evaluate(intensities) > self.smaller_expression.evaluate(intensities)


@dataclass(frozen=True)
class ExpressionContext:
    """What the scanning functions need to know about the equation being compiled"""

    section: Section
    line_number: Optional[int] = None
    comparator: str = ">"
    max_positions: Optional[int] = None
    expression: str = ""

    def error(self, message: str) -> RulesError:
        return RulesError(message, self.line_number)


def sort_fragment_names(names: Iterable[str]) -> List[str]:
    """Order ``names`` longest first, so that no name can shadow a longer one containing it."""
    return sorted(names, key=len, reverse=True)


def locate_comparator(equation: str) -> int:
    """The index of the first ``>``, else of the first ``<``, else -1."""
    index = equation.find(">")
    if index == -1:
        index = equation.find("<")
    return index


def find_fragment(value: str, sorted_names: Sequence[str]) -> Optional[Tuple[str, int]]:
    """
    Locate the next fragment reference in ``value``.

    The base peak literal is preferred, then the first of ``sorted_names`` found.

    Returns
    -------
    tuple of (str, int) or None
        The matched text and the index it starts at
    """
    match = BASEPEAK_PATTERN.search(value)
    if match is not None:
        return match.group(0), match.start()
    for name in sorted_names:
        start = value.find(name)
        if start != -1:
            return name, start
    return None


def _is_scan_char(ch: str) -> bool:
    return ch.isdigit() or ch in _SCAN_CHARS


def scan_before(text: str) -> Tuple[str, str, bool]:
    """
    Scan backwards from the end of the text preceding a fragment reference.

    Returns
    -------
    carried : str
        The text left of the sign, which still has to be parsed
    clause : str
        The multiplier clause between the sign and the fragment, without the sign
    positive : bool
        :const:`False` if the term is subtracted
    """
    text = text.strip()
    positive = True
    stop = 0
    for i in range(len(text) - 1, -1, -1):
        ch = text[i]
        if ch == "+" or ch == "-":
            positive = ch != "-"
            stop = i
            break
        if not _is_scan_char(ch):
            break
        stop = i
    carried = text[:stop].strip()
    clause = text[stop:].strip()
    if clause.startswith(("+", "-")):
        clause = clause[1:].strip()
    return carried, clause, positive


def scan_after(text: str) -> Tuple[str, str]:
    """
    Scan forwards over the position and multiplier clause following a fragment reference.

    Returns
    -------
    clause : str
        The position and multiplier text, e.g. ``[1]*2``
    rest : str
        The text following the clause, which still has to be parsed
    """
    text = text.strip()
    stop = 0
    for i, ch in enumerate(text):
        if not _is_scan_char(ch):
            break
        stop = i + 1
    return text[:stop].strip(), text[stop:].strip()


def _parse_number(text: str) -> Optional[Fraction]:
    if not NUMBER_PATTERN.fullmatch(text):
        return None
    return Fraction(Decimal(text))


def extract_multiplication_factor(pre: str, post: str, context: ExpressionContext) -> Tuple[Fraction, str, int]:
    """
    Interpret the clauses before and after a fragment reference or a bracket.

    ``pre`` may be ``<number>*``. ``post`` may start with a position ``[<int>]``,
    followed by ``*<number>`` or ``/<number>``.

    Returns
    -------
    multiplier : :class:`fractions.Fraction`
    multiplier_text : str
    position : int
        0 if no position was given

    Raises
    ------
    :class:`~.RulesError`
    """
    multiplier = Fraction(1)
    text = "1"
    position = 0
    if "*" in pre and ("*" in post or "/" in post):
        raise context.error(
            f'{EQUATION} must not contain more than one multiplier ("*" or "/") per fragment at each side of '
            f'the "{context.comparator}"! The value "{context.expression}" has more than one!')
    if pre:
        number = _parse_number(pre[:-1].strip()) if pre.endswith("*") else None
        if number is None:
            raise context.error(
                f'{EQUATION} allows only a multiplier sign ("*") and a number before the declared fragment! '
                f'The expression "{context.expression}" does not comply this rule!')
        multiplier = number
        text = pre[:-1].strip()
    if post.startswith("[") and "]" in post:
        if context.section is not Section.position:
            raise context.error(
                f'Position specific identifiers in "{const.INTENSITY_EQUATION}" are allowed in the '
                f'{const.POSITION_SECTION} section only! The expression "{context.expression}" has a position ("[]")!')
        try:
            position = strict_int(post[1:post.index("]")])
        except ValueError:
            raise context.error(
                f'{EQUATION} must have an integer value for the position! '
                f'The expression "{context.expression}" is not integer format!') from None
        max_positions = context.max_positions
        if position < 1 or (max_positions is not None and position > max_positions):
            message = f'The position specific value "{position}" is not allowed!'
            if max_positions is not None:
                message += f" Only values between 1 and {max_positions} are allowed!"
            raise context.error(message)
        post = post[post.index("]") + 1:].strip()
    if post:
        number = _parse_number(post[1:].strip()) if post.startswith(("*", "/")) else None
        if number is None or (post.startswith("/") and number == 0):
            raise context.error(
                f'{EQUATION} allows only a multiplier or divisor sign ("*" or "/") and a number after the '
                f'declared fragment! The expression "{context.expression}" does not comply this rule!')
        if post.startswith("/"):
            multiplier = 1 / number
            text = repr(float(multiplier))
        else:
            multiplier = number
            text = post[1:].strip()
    return multiplier, text, position


def extract_term(value: str, sorted_names: Sequence[str],
                 context: ExpressionContext) -> Tuple[Optional[FragmentTerm], str]:
    """
    Take the next fragment term out of ``value``.

    Returns
    -------
    term : :class:`FragmentTerm` or None
        :const:`None` if ``value`` references no fragment
    remaining : str
        The text left of the term joined with the text right of it
    """
    found = find_fragment(value, sorted_names)
    if found is None:
        return None, value
    name, start = found
    carried, pre, positive = scan_before(value[:start])
    post, rest = scan_after(value[start + len(name):])
    multiplier, text, position = extract_multiplication_factor(pre, post, context)
    if BASEPEAK_PATTERN.fullmatch(name):
        name = const.BASEPEAK_NAME
    return FragmentTerm(name, multiplier, text, positive, position), carried + rest


def is_mathematical_bracket(text: str, sorted_names: Sequence[str]) -> bool:
    """Whether the first ``(`` of ``text`` is not part of a fragment name containing brackets."""
    open_index = text.find("(")
    for name in sorted_names:
        if "(" not in name or name not in text:
            continue
        if open_index == text.find(name) + name.find("("):
            return False
    return True


def parse_side(text: str, sorted_names: Sequence[str], context: ExpressionContext,
               compatibility_mode: bool = False) -> ComparisonExpression:
    """
    Compile one side of a comparison.

    Parameters
    ----------
    text : str
        The text on one side of the comparator
    sorted_names : Sequence[str]
        The declared fragment names, longest first
    context : :class:`ExpressionContext`
    compatibility_mode : bool
        Whether fragment names may contain brackets

    Returns
    -------
    :class:`ComparisonExpression`
    """
    context = replace(context, expression=text)
    value = text.strip()
    global_multiplier = Fraction(1)
    global_text = "1"
    if "(" in text or ")" in text:
        open_index = text.find("(")
        close_index = text.rfind(")")
        if open_index == -1:
            raise context.error(
                f'{EQUATION} containing a closing bracket must contain an opening bracket! '
                f'The equation "{text}" does not!')
        if close_index == -1:
            raise context.error(
                f'{EQUATION} containing an opening bracket must contain a closing bracket! '
                f'The equation "{text}" does not!')
        if open_index > text.find(")"):
            raise context.error(
                f'{EQUATION} must not start with a closing bracket before an opening bracket! '
                f'The equation "{text}" does!')
        if not compatibility_mode or is_mathematical_bracket(text, sorted_names):
            value = text[open_index + 1:close_index].strip()
            prefix = text[:open_index].strip()
            suffix = text[close_index + 1:].strip()
            global_multiplier, global_text, _ = extract_multiplication_factor(prefix, suffix, context)

    terms: List[FragmentTerm] = []
    position = None
    while value:
        term, remaining = extract_term(value, sorted_names, context)
        if term is None:
            if not terms:
                raise context.error(
                    f'{EQUATION} must contain one previously declared fragment at each side of the '
                    f'"{context.comparator}"! The value "{text}" has not!')
            raise context.error(
                f'The "{const.INTENSITY_EQUATION}" contains a part that cannot be interpreted: "{value}"! '
                f'The problem is the equation "{text}"!')
        if not term.is_base_peak:
            if position is None:
                position = term.position
            elif position != term.position:
                raise context.error(
                    f'The "{const.INTENSITY_EQUATION}" containing position rules must have the same position '
                    f'on one side of the equation! The equation "{text}" causes the error!')
        terms.append(term)
        value = remaining
    if not terms:
        raise context.error(
            f'{EQUATION} must contain one previously declared fragment at each side of the '
            f'"{context.comparator}"! The value "{text}" has not!')
    return ComparisonExpression(tuple(terms), global_multiplier, global_text)


def compile_or_rule(equation: str, fragment_names: Iterable[str], context: ExpressionContext) -> ComparisonExpression:
    """Compile ``FragA|FragB|...`` into one expression listing the alternatives."""
    declared = {}
    for name in fragment_names:
        declared.setdefault(name.lower(), name)
    terms = []
    for part in equation.split("|"):
        name = declared.get(part.strip().lower())
        if name is None:
            raise context.error(
                f'{EQUATION} must contain previously declared fragments! The value "{part.strip()}" of '
                f'"{equation}" was not declared!')
        terms.append(FragmentTerm(name))
    return ComparisonExpression(tuple(terms))


def compile_equation(equation: str, section: Section, fragment_names: Iterable[str],
                     line_number: Optional[int] = None, max_positions: Optional[int] = None,
                     mandatory: bool = False, compatibility_mode: bool = False) -> IntensityRule:
    """
    Compile an intensity equation.

    Parameters
    ----------
    equation : str
        The equation, e.g. ``FragA*2>FragB``
    section : :class:`~.Section`
        The section the equation is defined in
    fragment_names : Iterable[str]
        The names of all fragments declared so far
    line_number : int, optional
        For error messages
    max_positions : int, optional
        The highest chain position a ``[POSITION]`` equation may refer to
    mandatory : bool
        Whether the rule must be fulfilled
    compatibility_mode : bool
        Whether fragment names may contain brackets

    Returns
    -------
    :class:`IntensityRule`

    Raises
    ------
    :class:`~.RulesError`
    """
    fragment_names = list(fragment_names)
    sorted_names = sort_fragment_names(fragment_names)
    context = ExpressionContext(section, line_number, max_positions=max_positions, expression=equation)
    index = locate_comparator(equation)
    if index == -1:
        if "|" not in equation:
            raise context.error(
                f'The value of {const.INTENSITY_EQUATION} must contain a comparator sign (">" or "<"), '
                f'or the OR sign ("|")!')
        if section is Section.position:
            raise context.error(f'The OR sign ("|") is not allowed in a {const.POSITION_SECTION} section!')
        bigger = compile_or_rule(equation, fragment_names, context)
        return IntensityRule(section, equation, bigger, ComparisonExpression(), mandatory, or_rule=True)
    if index < 1 or index >= len(equation) - 1:
        raise context.error(
            f'The value of {const.INTENSITY_EQUATION} must contain an expression at each side of the '
            f'comparator sign! The value "{equation}" has not!')

    comparator = equation[index]
    context = replace(context, comparator=comparator)
    left = equation[:index]
    right = equation[index + 1:]
    for side in (left, right):
        if ">" in side or "<" in side or "=" in side:
            raise context.error(
                f'The value of {const.INTENSITY_EQUATION} must contain only one comparator sign (">" or "<")! '
                f'The entry contains more than one!')
    left_expression = parse_side(left, sorted_names, context, compatibility_mode)
    right_expression = parse_side(right, sorted_names, context, compatibility_mode)
    if comparator == ">":
        bigger, smaller = left_expression, right_expression
    else:
        bigger, smaller = right_expression, left_expression
    return IntensityRule(section, equation, bigger, smaller, mandatory)


def parse_intensity_line(line: str, section: Section, fragment_names: Iterable[str],
                         line_number: Optional[int] = None, max_positions: Optional[int] = None,
                         compatibility_mode: bool = False) -> IntensityRule:
    """Compile one ``Equation=... mandatory=...`` entry of an ``!INTENSITIES`` subsection."""
    equation = None
    mandatory = False
    for token in tokenize_line(line, compatibility_mode):
        key, value = split_key_value(token, line_number, f"The {const.INTENSITIES_SUBSECTION} entry")
        lowered = key.lower()
        if lowered == const.INTENSITY_EQUATION.lower():
            equation = value
        elif lowered == const.FRAGMENT_MANDATORY.lower():
            mandatory = parse_mandatory(value, section, line_number, fragment=False) is MandatoryLevel.true
        else:
            raise RulesError(
                f'The section {const.INTENSITIES_SUBSECTION} does not support the key "{key}"!', line_number)
    if not equation:
        raise RulesError(
            f'An entry of {const.INTENSITIES_SUBSECTION} must contain an "{const.INTENSITY_EQUATION}=" '
            f"attribute!", line_number)
    return compile_equation(
        equation, section, fragment_names, line_number, max_positions, mandatory, compatibility_mode)


class IntensityRuleCompiler:
    """
    Turns the entries of ``!INTENSITIES`` subsections into :class:`IntensityRule` objects.

    Parameters
    ----------
    compatibility_mode : bool
        Whether to split entries at tabs only and to allow brackets in fragment names
    """

    compatibility_mode: bool

    def __init__(self, compatibility_mode: bool = False):
        self.compatibility_mode = compatibility_mode

    def max_positions(self, section: Section, settings: GeneralSettings,
                      line_number: Optional[int] = None) -> Optional[int]:
        if section is not Section.position:
            return None
        if settings.amount_of_chains is None:
            raise RulesError(
                f"If there is a {const.POSITION_SECTION} section, {const.AMOUNT_OF_CHAINS} has to be declared!",
                line_number)
        return settings.allowed_chain_positions

    def compile(self, line: str, section: Section, fragment_names: Iterable[str],
                settings: GeneralSettings, line_number: Optional[int] = None) -> IntensityRule:
        """Compile one ``Equation=... mandatory=...`` entry with the positions allowed by ``settings``."""
        rule = parse_intensity_line(
            line, section, fragment_names, line_number,
            self.max_positions(section, settings, line_number), self.compatibility_mode)
        logger.debug(
            "Compiled intensity rule %r of %s at line %r", rule.source_equation, section.header, line_number)
        return rule
