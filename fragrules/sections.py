"""
The section and subsection states of the rules file grammar and the transitions
between them.
"""
import enum
import logging

from typing import Optional

from fragrules import const
from fragrules.utils import RulesError

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class Section(enum.Enum):
    """The ``[...]`` section the scanner is currently in"""

    no_section = None
    general = const.GENERAL_SECTION
    head = const.HEAD_SECTION
    chains = const.CHAINS_SECTION
    position = const.POSITION_SECTION

    @property
    def header(self) -> Optional[str]:
        return self.value

    @classmethod
    def from_header(cls, text: str, line_number: Optional[int] = None) -> "Section":
        """
        Resolve a section header line, ignoring case.

        Raises
        ------
        :class:`~.RulesError`
            If ``text`` names no supported section
        """
        for section in cls:
            if section.value is not None and section.value.lower() == text.lower():
                return section
        raise RulesError(
            f"A section with the name {text} is not supported by the fragmentation rules!", line_number)


class Subsection(enum.Enum):
    """The ``!...`` subsection the scanner is currently in"""

    no_subsection = None
    fragments = const.FRAGMENTS_SUBSECTION
    intensities = const.INTENSITIES_SUBSECTION

    @property
    def marker(self) -> Optional[str]:
        return self.value

    @classmethod
    def from_marker(cls, text: str, line_number: Optional[int] = None) -> "Subsection":
        for subsection in cls:
            if subsection.value is not None and subsection.value.lower() == text.lower():
                return subsection
        raise RulesError(f"The subsection {text} is not supported!", line_number)


def is_section_header(line: str) -> bool:
    return line.startswith("[") and line.endswith("]")


def is_subsection_marker(line: str) -> bool:
    return line.startswith("!")


def enter_subsection(section: Section, text: str, line_number: Optional[int] = None) -> Subsection:
    """
    Compute the subsection state entered by the marker ``text`` while in ``section``.

    Raises
    ------
    :class:`~.RulesError`
        If no section has been opened yet, if ``section`` is ``[GENERAL]``, if the
        marker is unknown, or if ``!FRAGMENTS`` is opened inside ``[POSITION]``
    """
    if section is Section.no_section:
        raise RulesError("A subsection cannot start before a section starts!", line_number)
    if section is Section.general:
        raise RulesError(
            f"The {const.GENERAL_SECTION} section must not contain any subsections!", line_number)
    subsection = Subsection.from_marker(text, line_number)
    if section is Section.position and subsection is Subsection.fragments:
        raise RulesError(
            f"The section {const.POSITION_SECTION} does not support the subsection "
            f"{const.FRAGMENTS_SUBSECTION}!", line_number)
    logger.debug("Entering %s of %s at line %r", subsection.marker, section.header, line_number)
    return subsection
