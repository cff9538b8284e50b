"""The in-memory representation of one compiled rules file."""
import logging

from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from fragrules.expression import IntensityRule
from fragrules.fragment import FragmentRule
from fragrules.general import GeneralSettings
from fragrules.sections import Section
from fragrules.utils import RulesError

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class RuleDocument:
    """
    The fragments and intensity rules of one lipid class and adduct.

    A document is populated while a rules file is being read and is frozen once
    reading succeeds. After that it only exposes read-only views; any attempt to
    add to it raises :class:`~.RulesError`.

    Attributes
    ----------
    name : str, optional
        The name of the rule set, usually ``<class>_<adduct>``
    general_settings : :class:`~.GeneralSettings`
        The content of the ``[GENERAL]`` section
    """

    name: Optional[str]
    general_settings: GeneralSettings

    _head_fragments: Dict[str, FragmentRule]
    _chain_fragments: Dict[str, FragmentRule]
    _head_intensities: List[IntensityRule]
    _chain_intensities: List[IntensityRule]
    _position_intensities: List[IntensityRule]
    _frozen: bool

    def __init__(self, general_settings: Optional[GeneralSettings] = None, name: Optional[str] = None):
        if general_settings is None:
            general_settings = GeneralSettings()
        self.name = name
        self.general_settings = general_settings
        self._head_fragments = {}
        self._chain_fragments = {}
        self._head_intensities = []
        self._chain_intensities = []
        self._position_intensities = []
        self._frozen = False

    def __repr__(self):
        return (f"{self.__class__.__name__}(name={self.name!r}, head_fragments={len(self._head_fragments)}, "
                f"chain_fragments={len(self._chain_fragments)}, frozen={self._frozen})")

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "RuleDocument":
        """Mark the document as complete. This may happen only once."""
        if self._frozen:
            raise RulesError("The rule document has already been finalized!")
        self.general_settings = self.general_settings.copy()
        self.general_settings.lock()
        self._frozen = True
        return self

    def _check_mutable(self):
        if self._frozen:
            raise RulesError("The rule document has been finalized and cannot be changed!")

    def add_fragment(self, fragment: FragmentRule):
        self._check_mutable()
        if fragment.name in self._head_fragments or fragment.name in self._chain_fragments:
            raise RulesError(f'The fragment "{fragment.name}" has already been defined!')
        if fragment.section is Section.chains:
            self._chain_fragments[fragment.name] = fragment
        else:
            self._head_fragments[fragment.name] = fragment

    def add_intensity_rule(self, rule: IntensityRule):
        self._check_mutable()
        if rule.section is Section.head:
            self._head_intensities.append(rule)
        elif rule.section is Section.chains:
            self._chain_intensities.append(rule)
        elif rule.section is Section.position:
            self._position_intensities.append(rule)
        else:
            raise RulesError(f"Intensity rules cannot be defined in the {rule.section.header} section!")

    @property
    def head_fragments(self) -> Mapping[str, FragmentRule]:
        return MappingProxyType(self._head_fragments)

    @property
    def chain_fragments(self) -> Mapping[str, FragmentRule]:
        return MappingProxyType(self._chain_fragments)

    @property
    def head_intensities(self) -> Tuple[IntensityRule, ...]:
        return tuple(self._head_intensities)

    @property
    def chain_intensities(self) -> Tuple[IntensityRule, ...]:
        return tuple(self._chain_intensities)

    @property
    def position_intensities(self) -> Tuple[IntensityRule, ...]:
        return tuple(self._position_intensities)

    @property
    def fragment_names(self) -> List[str]:
        return list(self._head_fragments) + list(self._chain_fragments)

    def get_fragment(self, name: str) -> FragmentRule:
        try:
            return self._head_fragments[name]
        except KeyError:
            return self._chain_fragments[name]

    def iter_fragments(self) -> Iterator[FragmentRule]:
        yield from self._head_fragments.values()
        yield from self._chain_fragments.values()

    def iter_intensity_rules(self) -> Iterator[IntensityRule]:
        yield from self._head_intensities
        yield from self._chain_intensities
        yield from self._position_intensities

    @property
    def has_fragments(self) -> bool:
        return bool(self._head_fragments) or bool(self._chain_fragments)

    @property
    def is_empty(self) -> bool:
        """Whether the document has neither fragments nor intensity rules"""
        return not self.has_fragments and not any(self.iter_intensity_rules())

    @property
    def spectrum_level_range(self) -> Optional[Tuple[int, int]]:
        """The lowest and highest MS level any fragment is expected at"""
        levels = [fragment.ms_level for fragment in self.iter_fragments()]
        if not levels:
            return None
        return min(levels), max(levels)

    @property
    def allowed_chain_positions(self) -> int:
        return self.general_settings.allowed_chain_positions
