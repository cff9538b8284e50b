"""
Validation of fragment formulas.

A fragment formula is a chemical sum formula that may additionally reference
the precursor (``$PRECURSOR``), one hydrocarbon chain token (``$CHAIN``,
``$ALKYLCHAIN``, ``$ALKENYLCHAIN`` or ``$LCB``) and fragments that were defined
in previous lines of the same rules file.
"""
import enum
import logging

from dataclasses import dataclass, field
from typing import Collection, Dict, List, Mapping, Optional, Tuple

from pyteomics.mass import nist_mass

from fragrules.const import (
    PRECURSOR_NAME,
    CHAIN_NAME,
    ALKYL_CHAIN_NAME,
    ALKENYL_CHAIN_NAME,
    LCB_NAME,
)
from fragrules.utils import RulesError

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class ChainType(enum.Enum):
    """The kind of hydrocarbon chain a chain fragment is built from"""

    acyl = CHAIN_NAME
    alkyl = ALKYL_CHAIN_NAME
    alkenyl = ALKENYL_CHAIN_NAME
    lcb = LCB_NAME

    @property
    def token(self) -> str:
        return self.value


# the order in which chain tokens are looked for; "$CHAIN" must come last
CHAIN_TOKEN_PRECEDENCE = (
    ChainType.alkyl,
    ChainType.alkenyl,
    ChainType.lcb,
    ChainType.acyl,
)


class ChemicalFormulaError(ValueError):
    pass


def categorize_formula(formula: str) -> Dict[str, int]:
    """
    Split a sum formula into element counts.

    Whitespace is read as ``+``, and ``+`` or ``-`` set the sign of all following
    elements until the next sign.

    Parameters
    ----------
    formula : str
        The formula, e.g. ``"C5H14NO4P"`` or ``"-H2O"``

    Returns
    -------
    dict
        The signed count for each element symbol

    Raises
    ------
    ChemicalFormulaError
        When the text contains something other than element symbols, counts and signs.
    """
    categorized: Dict[str, int] = {}
    sign = 1
    element = ""
    count = ""

    def flush():
        if element:
            amount = int(count) if count else 1
            categorized[element] = categorized.get(element, 0) + sign * amount

    for ch in formula:
        if ch.isspace() or ch == "+" or ch == "-":
            flush()
            element = ""
            count = ""
            sign = -1 if ch == "-" else 1
        elif "A" <= ch <= "Z":
            flush()
            element = ch
            count = ""
        elif "a" <= ch <= "z":
            if not element or count:
                raise ChemicalFormulaError(f"Misplaced lowercase letter {ch!r} in {formula!r}")
            element += ch
        elif ch.isdigit():
            if not element:
                raise ChemicalFormulaError(f"Misplaced digit {ch!r} in {formula!r}")
            count += ch
        else:
            raise ChemicalFormulaError(f"Unexpected character {ch!r} in {formula!r}")
    flush()
    return categorized


def _remove_token(formula: str, token: str, allowed_signs: str, message: str) -> Tuple[str, int]:
    start = formula.find(token)
    if start == -1:
        return formula, 0
    stop = start + len(token)
    sign = 1
    if start != 0:
        start -= 1
        prefix = formula[start]
        if prefix not in allowed_signs:
            raise RulesError(message)
        if prefix == "-":
            sign = -1
    return formula[:start] + formula[stop:], sign


@dataclass
class FormulaAnalysis:
    """
    The result of breaking a fragment formula into its reserved, referenced and elemental parts.

    Attributes
    ----------
    formula : str
        The formula text as written in the rules file
    contains_precursor : bool
        Whether the precursor is part of the fragment
    chain_type : :class:`ChainType`, optional
        The chain type contributed either by a chain token or by a referenced chain fragment
    chain_sign : int
        +1 if the chain is added, -1 if it is subtracted, 0 if there is no chain token
    references : list of (str, int)
        Previously defined fragments used in the formula, with their sign
    elements : dict
        The remaining elemental composition
    """

    formula: str
    contains_precursor: bool = False
    chain_type: Optional[ChainType] = None
    chain_sign: int = 0
    references: List[Tuple[str, int]] = field(default_factory=list)
    elements: Dict[str, int] = field(default_factory=dict)


class FormulaValidator:
    """
    Checks fragment formulas against an element table and the fragments defined so far.

    Parameters
    ----------
    elements : Collection[str], optional
        The element symbols that may be used. Defaults to the elements known to
        :data:`pyteomics.mass.nist_mass`.
    """

    elements: Collection[str]

    def __init__(self, elements: Optional[Collection[str]] = None):
        if elements is None:
            elements = frozenset(symbol for symbol in nist_mass if symbol.isalpha())
        self.elements = elements

    def is_element_available(self, symbol: str) -> bool:
        return symbol in self.elements

    def analyze(
        self,
        formula: str,
        head_fragments: Mapping[str, object] = None,
        chain_fragments: Mapping[str, object] = None,
    ) -> FormulaAnalysis:
        """
        Validate ``formula`` and decompose it.

        Only the fragments present in ``head_fragments`` and ``chain_fragments``
        may be referenced, so a formula can never point to a fragment that is
        defined further down in the file.

        Parameters
        ----------
        formula : str
            The formula to validate
        head_fragments : Mapping
            The head fragments defined so far, by name
        chain_fragments : Mapping
            The chain fragments defined so far, by name. Their values must expose
            a ``chain_type`` attribute.

        Returns
        -------
        :class:`FormulaAnalysis`

        Raises
        ------
        :class:`~.RulesError`
        """
        head_fragments = head_fragments or {}
        chain_fragments = chain_fragments or {}
        analysis = FormulaAnalysis(formula)

        remainder, sign = _remove_token(
            formula, PRECURSOR_NAME, "+",
            f'Only a "+" can be before a {PRECURSOR_NAME} in a formula!')
        analysis.contains_precursor = sign != 0

        for chain_type in CHAIN_TOKEN_PRECEDENCE:
            if chain_type.token in remainder:
                remainder, sign = _remove_token(
                    remainder, chain_type.token, "+-",
                    f'Only a "+" or a "-" can be before a {chain_type.token} in a formula!')
                analysis.chain_type = chain_type
                analysis.chain_sign = sign
                break

        names = sorted(list(head_fragments) + list(chain_fragments), key=len, reverse=True)
        for name in names:
            if name not in remainder:
                continue
            remainder, sign = _remove_token(
                remainder, name, "+-",
                f'Only a "+" or a "-" can be before the self-defined fragment "{name}" in a formula!')
            analysis.references.append((name, sign))
            if name in chain_fragments:
                analysis.chain_type = getattr(chain_fragments[name], "chain_type", None)

        try:
            analysis.elements = categorize_formula(remainder)
        except ChemicalFormulaError as err:
            logger.debug("Failed to categorize %r: %s", remainder, err)
            raise RulesError(
                f"The formula {formula} contains fragments that have not been defined before! "
                "Fragments have to be defined in previous rows, before they can be used!") from err
        for element in analysis.elements:
            if not self.is_element_available(element):
                raise RulesError(
                    f"The formula {formula} contains the element {element} that has not been defined! "
                    "Please define the element in the element table, in order to use it!")
        return analysis

    def validate(self, formula: str, head_fragments: Mapping[str, object] = None,
                 chain_fragments: Mapping[str, object] = None) -> Optional[ChainType]:
        """Validate ``formula`` and return the chain type it carries, if any."""
        return self.analyze(formula, head_fragments, chain_fragments).chain_type
