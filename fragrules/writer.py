"""Writing rule documents back into the fragmentation rules text format."""
import io
import logging
import os

from typing import Iterable, Optional, Union

from fragrules import const
from fragrules.document import RuleDocument
from fragrules.expression import IntensityRule
from fragrules.fragment import FragmentRule
from fragrules.general import SETTING_DEFINITIONS, GeneralSettings
from fragrules.utils import RulesIOError, rule_file_name

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class RuleDocumentWriter:
    """
    Serializes fragments and intensity rules in the format read by :class:`~.FragRuleParser`.

    Parameters
    ----------
    filename : str, os.PathLike or file-like
        The destination. Paths are opened for writing, and streams passed in are
        written to but not closed.
    """

    filename: Union[str, os.PathLike, io.IOBase]
    handle: io.TextIOBase
    _owns_handle: bool

    def __init__(self, filename: Union[str, os.PathLike, io.IOBase]):
        self.filename = filename
        self._owns_handle = False
        self._coerce_handle(filename)

    def _coerce_handle(self, filename_or_stream):
        if hasattr(filename_or_stream, "write"):
            self.handle = filename_or_stream
        else:
            try:
                self.handle = open(filename_or_stream, "wt", encoding="utf8", newline="\n")
            except OSError as err:
                raise RulesIOError(f"The rules file {filename_or_stream} cannot be written: {err}") from err
            self._owns_handle = True

    def _write(self, text: str):
        try:
            self.handle.write(text)
        except OSError as err:
            raise RulesIOError(f"The rules file {self.filename} cannot be written: {err}") from err

    def write_general(self, settings: GeneralSettings):
        """
        Write the ``[GENERAL]`` section.

        The required keys are always written. Optional keys are written with the
        text they were read with unless they are absent or equal to their default.
        """
        self._write(f"{const.GENERAL_SECTION}\n")
        for definition in SETTING_DEFINITIONS:
            key = definition.key
            if key not in settings:
                continue
            if key not in const.REQUIRED_GENERAL_KEYS and settings.is_default(key):
                continue
            self._write(f"{key}={settings[key]}\n")

    def format_fragment(self, fragment: FragmentRule) -> str:
        return "\t".join([
            f"{const.FRAGMENT_NAME}={fragment.name}",
            f"{const.FRAGMENT_FORMULA}={fragment.formula}",
            f"{const.FRAGMENT_CHARGE}={fragment.charge}",
            f"{const.FRAGMENT_MS_LEVEL}={fragment.ms_level}",
            f"{const.FRAGMENT_MANDATORY}={fragment.mandatory_level.literal}",
        ])

    def format_intensity_rule(self, rule: IntensityRule) -> str:
        mandatory = "true" if rule.mandatory else "false"
        return f"{const.INTENSITY_EQUATION}={rule.source_equation}\t{const.FRAGMENT_MANDATORY}={mandatory}"

    def write_section(self, header: str, fragments: Optional[Iterable[FragmentRule]],
                      intensities: Iterable[IntensityRule]):
        """
        Write a section with its ``!FRAGMENTS`` and ``!INTENSITIES`` subsections.

        Sections without fragments are skipped, and ``!INTENSITIES`` is only written
        if there are intensity rules. A ``fragments`` value of :const:`None` writes a
        section consisting of intensity rules only.
        """
        if fragments is not None:
            fragments = list(fragments)
            if not fragments:
                return
        intensities = list(intensities)
        self._write(f"\n{header}\n")
        if fragments is not None:
            self._write(f"{const.FRAGMENTS_SUBSECTION}\n")
            for fragment in fragments:
                self._write(self.format_fragment(fragment) + "\n")
        if not intensities:
            return
        if fragments is not None:
            self._write("\n")
        self._write(f"{const.INTENSITIES_SUBSECTION}\n")
        for rule in intensities:
            self._write(self.format_intensity_rule(rule) + "\n")

    def write_rules(self, settings: GeneralSettings,
                    head_fragments: Iterable[FragmentRule] = (),
                    head_intensities: Iterable[IntensityRule] = (),
                    chain_fragments: Iterable[FragmentRule] = (),
                    chain_intensities: Iterable[IntensityRule] = (),
                    position_intensities: Iterable[IntensityRule] = ()):
        """
        Write a complete rules file.

        Parameters
        ----------
        settings : :class:`~.GeneralSettings`
            The ``[GENERAL]`` settings
        head_fragments : Iterable[:class:`~.FragmentRule`]
        head_intensities : Iterable[:class:`~.IntensityRule`]
        chain_fragments : Iterable[:class:`~.FragmentRule`]
        chain_intensities : Iterable[:class:`~.IntensityRule`]
        position_intensities : Iterable[:class:`~.IntensityRule`]
            The ``[POSITION]`` section is only written if there are chain fragments, too.
        """
        chain_fragments = list(chain_fragments)
        position_intensities = list(position_intensities)
        self.write_general(settings)
        self.write_section(const.HEAD_SECTION, head_fragments, head_intensities)
        self.write_section(const.CHAINS_SECTION, chain_fragments, chain_intensities)
        if chain_fragments and position_intensities:
            self.write_section(const.POSITION_SECTION, None, position_intensities)

    def write_document(self, document: RuleDocument):
        logger.debug("Writing rule document %r", document.name)
        self.write_rules(
            document.general_settings,
            document.head_fragments.values(),
            document.head_intensities,
            document.chain_fragments.values(),
            document.chain_intensities,
            document.position_intensities,
        )

    def close(self):
        if self._owns_handle:
            self.handle.close()
        else:
            self.handle.flush()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def write_rules(document: RuleDocument, destination: Union[str, os.PathLike, io.IOBase]):
    """Write ``document`` to ``destination``."""
    with RuleDocumentWriter(destination) as writer:
        writer.write_document(document)


def rules_to_string(document: RuleDocument) -> str:
    buffer = io.StringIO()
    with RuleDocumentWriter(buffer) as writer:
        writer.write_document(document)
    return buffer.getvalue()


def rule_file_path(lipid_class: str, adduct: Optional[str] = None,
                   directory: Union[str, os.PathLike] = const.DEFAULT_RULES_DIR) -> str:
    """The path of the rules file for ``lipid_class`` and ``adduct`` in ``directory``."""
    return os.path.join(os.fspath(directory), rule_file_name(lipid_class, adduct))
