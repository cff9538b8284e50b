"""
Reading of fragmentation rules files.

A rules file is line oriented. Section headers (``[GENERAL]``, ``[HEAD]``, ``[CHAINS]``,
``[POSITION]``) and subsection markers (``!FRAGMENTS``, ``!INTENSITIES``) switch the
scanner's state, and every other line is handed to the parser for the current state.

.. code-block:: python

    from fragrules import read_rules

    document = read_rules("fragRules/PC_H.frag.txt")
    for name, fragment in document.chain_fragments.items():
        print(name, fragment.formula)
"""
import io
import logging
import os

from typing import Iterable, Optional, Union

from fragrules import const
from fragrules.document import RuleDocument
from fragrules.expression import IntensityRuleCompiler
from fragrules.formula import FormulaValidator
from fragrules.fragment import FragmentRuleCompiler
from fragrules.general import GeneralSettings
from fragrules.sections import (
    Section, Subsection, enter_subsection, is_section_header, is_subsection_marker
)
from fragrules.utils import MissingSectionError, RulesError, RulesIOError, open_stream, rule_name_from_path

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class FragRuleParser:
    """
    Compiles a fragmentation rules file into a :class:`~.RuleDocument`.

    One instance reads one file at a time. Its state is reset whenever a new
    file is read, so an instance must not be shared by concurrent readers.

    Parameters
    ----------
    compatibility_mode : bool
        Split entries at tabs only and allow brackets in fragment names
    formula_validator : :class:`~.FormulaValidator`, optional
        The validator used for fragment formulas

    Attributes
    ----------
    section : :class:`~.Section`
        The section the scanner is in
    subsection : :class:`~.Subsection`
        The subsection the scanner is in
    """

    compatibility_mode: bool
    fragment_compiler: FragmentRuleCompiler
    intensity_compiler: IntensityRuleCompiler

    section: Section
    subsection: Subsection
    document: Optional[RuleDocument]
    _seen_sections: set

    def __init__(self, compatibility_mode: bool = False, formula_validator: Optional[FormulaValidator] = None):
        self.compatibility_mode = compatibility_mode
        self.fragment_compiler = FragmentRuleCompiler(formula_validator, compatibility_mode)
        self.intensity_compiler = IntensityRuleCompiler(compatibility_mode)
        self.reset()

    def reset(self, name: Optional[str] = None):
        self.section = Section.no_section
        self.subsection = Subsection.no_subsection
        self.document = RuleDocument(GeneralSettings(), name=name)
        self._seen_sections = set()

    def parse(self, source: Union[str, os.PathLike, io.IOBase], name: Optional[str] = None) -> RuleDocument:
        """
        Read a rules file from a path or an open stream.

        Parameters
        ----------
        source : str, os.PathLike or file-like
            The rules file. Gzip compressed files are detected automatically.
        name : str, optional
            The name of the rule set. Derived from the file name if omitted.

        Returns
        -------
        :class:`~.RuleDocument`

        Raises
        ------
        :class:`~.RulesIOError`
            If the file cannot be read
        :class:`~.RulesError`
            At the first violation of the rules grammar
        """
        if name is None and isinstance(source, (str, os.PathLike)):
            name = rule_name_from_path(source)
        try:
            stream = open_stream(source)
        except OSError as err:
            raise RulesIOError(f"The rules file {source} cannot be read: {err}") from err
        try:
            with stream:
                return self.parse_lines(stream, name=name)
        except (OSError, UnicodeDecodeError) as err:
            raise RulesIOError(f"The rules file {source} cannot be read: {err}") from err

    def parse_text(self, text: str, name: Optional[str] = None) -> RuleDocument:
        return self.parse_lines(io.StringIO(text), name=name)

    def parse_lines(self, lines: Iterable[str], name: Optional[str] = None) -> RuleDocument:
        """
        Read the lines of a rules file.

        Returns
        -------
        :class:`~.RuleDocument`
            The frozen document
        """
        self.reset(name)
        for line_number, line in enumerate(lines, 1):
            self.handle_line(line, line_number)
        self.check_complete()
        document = self.document.freeze()
        logger.debug(
            "Read %r with %d head and %d chain fragments", document.name,
            len(document.head_fragments), len(document.chain_fragments))
        self.document = None
        return document

    def handle_line(self, line: str, line_number: int):
        """Update the scanner state or dispatch one content line."""
        line = line.strip()
        if not line:
            return
        if is_section_header(line):
            self.section = Section.from_header(line, line_number)
            self.subsection = Subsection.no_subsection
            self._seen_sections.add(self.section)
            logger.debug("Entering %s at line %d", self.section.header, line_number)
        elif is_subsection_marker(line):
            self.subsection = enter_subsection(self.section, line, line_number)
        elif self.section is Section.general:
            self.document.general_settings.parse_line(line, line_number)
        elif self.subsection is Subsection.fragments:
            self._handle_fragment(line, line_number)
        elif self.subsection is Subsection.intensities:
            self._handle_intensity(line, line_number)
        else:
            logger.debug("Ignoring line %d outside of any subsection: %r", line_number, line)

    def _handle_fragment(self, line: str, line_number: int):
        document = self.document
        fragment = self.fragment_compiler.compile(
            line, self.section, document.head_fragments, document.chain_fragments,
            document.general_settings, line_number)
        document.add_fragment(fragment)

    def _handle_intensity(self, line: str, line_number: int):
        document = self.document
        rule = self.intensity_compiler.compile(
            line, self.section, document.fragment_names, document.general_settings, line_number)
        document.add_intensity_rule(rule)

    def check_complete(self):
        """
        Check the constraints spanning the whole file.

        Raises
        ------
        :class:`~.MissingSectionError`
            If ``[GENERAL]`` is missing, or both of ``[HEAD]`` and ``[CHAINS]`` are
        :class:`~.RulesError`
            If no fragment was defined, a required setting is missing or the chain
            counts are inconsistent
        """
        settings = self.document.general_settings
        if Section.general not in self._seen_sections:
            raise MissingSectionError(
                f"The rules file does not contain the mandatory {const.GENERAL_SECTION} section!")
        if Section.head not in self._seen_sections and Section.chains not in self._seen_sections:
            raise MissingSectionError(
                f"The rules file must contain a {const.HEAD_SECTION} or a {const.CHAINS_SECTION} section!")
        if not self.document.has_fragments:
            raise RulesError(
                f"There must be at least one fragment in the {const.HEAD_SECTION} or "
                f"{const.CHAINS_SECTION} section!")
        for key in settings.missing_required():
            raise RulesError(
                f'The rules file must contain the property "{key}" in the {const.GENERAL_SECTION} section!')
        if settings.alkyl_chains + settings.alkenyl_chains + settings.amount_of_lcbs > settings.amount_of_chains:
            raise RulesError(
                f'There must not be more "{const.ALKYL_CHAINS}", "{const.ALKENYL_CHAINS}" and '
                f'"{const.AMOUNT_OF_LCBS}" than "{const.AMOUNT_OF_CHAINS}"!')
        if settings.amount_of_lcbs > 0 and settings.lcb_library is None:
            raise RulesError(
                f'If there are LCBs, the property "{const.LCB_LIBRARY}" is required in the '
                f"{const.GENERAL_SECTION} section!")
        if settings.other_adducts is not None and settings.other_adduct_tolerance is None:
            raise RulesError(
                f'If there is a "{const.VALID_ONLY_WITH_OTHER_ADDUCT}" property, the property '
                f'"{const.OTHER_ADDUCT_VALIDITY_TOLERANCE}" is required in the {const.GENERAL_SECTION} section!')


def read_rules(source: Union[str, os.PathLike, io.IOBase], compatibility_mode: bool = False,
               name: Optional[str] = None) -> RuleDocument:
    """Read the rules file ``source`` with a new :class:`FragRuleParser`."""
    return FragRuleParser(compatibility_mode).parse(source, name=name)


def parse_rules_text(text: str, compatibility_mode: bool = False, name: Optional[str] = None) -> RuleDocument:
    """Compile rules given as a string."""
    return FragRuleParser(compatibility_mode).parse_text(text, name=name)
