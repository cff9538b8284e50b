import io
import os
import tempfile
import unittest

from fragrules import read_rules, parse_rules_text
from fragrules.general import IdentificationOrder
from fragrules.writer import RuleDocumentWriter, rule_file_path, rules_to_string, write_rules

from .common import datafile, rules_text


class TestRuleDocumentWriter(unittest.TestCase):

    def test_round_trip(self):
        document = read_rules(datafile("PC_H.frag.txt"))
        text = rules_to_string(document)
        dup = parse_rules_text(text, name=document.name)
        self.assertEqual(dict(dup.general_settings), dict(document.general_settings))
        self.assertEqual(list(dup.iter_fragments()), list(document.iter_fragments()))
        self.assertEqual(list(dup.iter_intensity_rules()), list(document.iter_intensity_rules()))
        self.assertEqual(rules_to_string(dup), text)

    def test_layout(self):
        document = parse_rules_text(rules_text(
            "[HEAD]", "!FRAGMENTS",
            "Name=A Formula=$PRECURSOR-H2O mandatory=quant",
            "!INTENSITIES",
            "Equation=A>$BASEPEAK*0.1 mandatory=true",
        ))
        lines = rules_to_string(document).splitlines()
        self.assertEqual(lines[0], "[GENERAL]")
        self.assertEqual(lines[1], "AmountOfChains=2")
        self.assertEqual(lines[5:], [
            "",
            "[HEAD]",
            "!FRAGMENTS",
            "Name=A\tFormula=$PRECURSOR-H2O\tCharge=1\tMSLevel=2\tmandatory=quant",
            "",
            "!INTENSITIES",
            "Equation=A>$BASEPEAK*0.1\tmandatory=true",
        ])

    def test_section_without_intensities(self):
        document = parse_rules_text(rules_text(
            "[HEAD]", "!FRAGMENTS",
            "Name=A Formula=H2O",
        ))
        lines = rules_to_string(document).splitlines()
        self.assertNotIn("!INTENSITIES", lines)
        self.assertEqual(lines[-3:], [
            "[HEAD]",
            "!FRAGMENTS",
            "Name=A\tFormula=H2O\tCharge=1\tMSLevel=2\tmandatory=false",
        ])

    def test_general_settings_round_trip(self):
        text = rules_text("[HEAD]", "!FRAGMENTS", "Name=A Formula=H2O").replace(
            "AmountOfChains=2", "\n".join([
                "AmountOfChains=2",
                "MSIdentificationOrder=MSnOnly",
                "SpectrumCoverage=5‰",
                "ValidOnlyWithOtherAdduct=H|Na",
                "OtherAdductValidityTolerance=0.1",
                "AddChainPositions=1",
                "RetentionTimeMaxDeviation=0.5",
            ]))
        settings = parse_rules_text(text).general_settings
        dup = parse_rules_text(rules_to_string(parse_rules_text(text))).general_settings
        self.assertEqual(dup.identification_order, IdentificationOrder.msn_only)
        self.assertEqual(dup.identification_order, settings.identification_order)
        self.assertAlmostEqual(dup.spectrum_coverage, 0.005)
        self.assertEqual(dup.other_adducts.adducts, ("H", "Na"))
        self.assertFalse(dup.other_adducts.require_all)
        self.assertAlmostEqual(dup.other_adduct_tolerance, 0.1)
        self.assertEqual(dup.add_chain_positions, 1)
        self.assertEqual(dup.allowed_chain_positions, 3)
        self.assertAlmostEqual(dup.rt_max_deviation, 0.5)

    def test_default_settings_omitted(self):
        text = rules_text("[HEAD]", "!FRAGMENTS", "Name=A Formula=H2O").replace(
            "AmountOfChains=2", "AmountOfChains=2\nRetentionTimePostprocessing=false\nBasePeakCutoff=1%")
        written = rules_to_string(parse_rules_text(text))
        self.assertNotIn("RetentionTimePostprocessing", written)
        self.assertIn("BasePeakCutoff=1%\n", written)

    def test_position_needs_chains(self):
        document = read_rules(datafile("PC_H.frag.txt"))
        buffer = io.StringIO()
        with RuleDocumentWriter(buffer) as writer:
            writer.write_rules(
                document.general_settings, document.head_fragments.values(), document.head_intensities,
                (), (), document.position_intensities)
        text = buffer.getvalue()
        self.assertNotIn("[CHAINS]", text)
        self.assertNotIn("[POSITION]", text)
        self.assertIn("[HEAD]", text)

    def test_write_file(self):
        document = read_rules(datafile("minimal.frag.txt"))
        with tempfile.TemporaryDirectory() as tmpdir:
            path = rule_file_path("PC", "H", directory=tmpdir)
            self.assertEqual(rule_file_path("PC"), os.path.join("fragRules", "PC.frag.txt"))
            self.assertTrue(path.endswith("PC_H.frag.txt"))
            write_rules(document, path)
            dup = read_rules(path)
            self.assertEqual(dup.name, "PC_H")
            self.assertEqual(list(dup.head_fragments), ["NL_H2O"])
            self.assertTrue(os.path.exists(path))


if __name__ == "__main__":
    unittest.main()
