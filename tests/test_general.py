import unittest

from fragrules.general import GeneralSettings, IdentificationOrder, OtherAdductRequirement
from fragrules.utils import RulesError


class TestGeneralSettings(unittest.TestCase):

    def test_required_and_typed(self):
        settings = GeneralSettings()
        settings.parse_line("AmountOfChains=2", 2)
        settings.parse_line("ChainLibrary=fattyAcidChains.xlsx", 3)
        self.assertEqual(settings.amount_of_chains, 2)
        self.assertEqual(settings["amountofchains"], "2")
        self.assertEqual(settings.missing_required(), ["CAtomsFromName", "DoubleBondsFromName"])

    def test_defaults(self):
        settings = GeneralSettings()
        self.assertIsNone(settings.amount_of_chains)
        self.assertEqual(settings.alkyl_chains, 0)
        self.assertEqual(settings.base_peak_cutoff, 0.0)
        self.assertFalse(settings.rt_postprocessing)
        self.assertEqual(settings.identification_order, IdentificationOrder.ms1_first)
        self.assertIsNone(settings.chain_cutoff)
        self.assertEqual(len(settings), 0)

    def test_unknown_key(self):
        settings = GeneralSettings()
        with self.assertRaises(RulesError) as ctx:
            settings.parse_line("Foo=1", 4)
        self.assertEqual(
            str(ctx.exception),
            "The section [GENERAL] does not support the property Foo! Error at line number 4!")

    def test_missing_equals(self):
        with self.assertRaises(RulesError) as ctx:
            GeneralSettings().parse_line("AmountOfChains 2", 2)
        self.assertEqual(ctx.exception.line_number, 2)
        self.assertIn('There is no "=" in "AmountOfChains 2"', ctx.exception.message)

    def test_negative_chain_count(self):
        with self.assertRaises(RulesError) as ctx:
            GeneralSettings().parse_line("AmountOfChains=-1", 2)
        self.assertIn("must not be negative", str(ctx.exception))

    def test_strict_numbers(self):
        for line in ("AmountOfChains=1_0", "AmountOfChains=\u0662", "RetentionTimeMaxDeviation=1_0",
                     "BasePeakCutoff=1_0%"):
            with self.subTest(line=line):
                with self.assertRaises(RulesError):
                    GeneralSettings().parse_line(line, 3)
        settings = GeneralSettings()
        settings.parse_line("RetentionTimeMaxDeviation=.5")
        self.assertAlmostEqual(settings.rt_max_deviation, 0.5)

    def test_percent_values(self):
        settings = GeneralSettings()
        settings.parse_line("BasePeakCutoff=99.9%")
        self.assertAlmostEqual(settings.base_peak_cutoff, 0.999)
        settings.parse_line("SpectrumCoverage=5‰")
        self.assertAlmostEqual(settings.spectrum_coverage, 0.005)
        settings.parse_line("ChainCutoff=0.3")
        self.assertAlmostEqual(settings.chain_cutoff, 0.3)

    def test_percent_out_of_range(self):
        settings = GeneralSettings()
        with self.assertRaises(RulesError) as ctx:
            settings.parse_line("BasePeakCutoff=100%", 7)
        self.assertIn("must not be bigger than 100%", str(ctx.exception))
        with self.assertRaises(RulesError) as ctx:
            settings.parse_line("BasePeakCutoff=-1%", 7)
        self.assertIn("must not be negative", str(ctx.exception))
        with self.assertRaises(RulesError):
            settings.parse_line("BasePeakCutoff=abc", 7)
        self.assertNotIn("BasePeakCutoff", settings)

    def test_library_suffix(self):
        settings = GeneralSettings()
        with self.assertRaises(RulesError):
            settings.parse_line("ChainLibrary=chains.csv")
        settings.parse_line("ChainLibrary=chains.XLS")
        self.assertEqual(settings.chain_library, "chains.XLS")

    def test_name_pattern(self):
        settings = GeneralSettings()
        settings.parse_line(r"CAtomsFromName=\D*(\d+):\d+")
        self.assertEqual(settings.carbon_atoms_pattern.match("PC 34:1").group(1), "34")
        with self.assertRaises(RulesError):
            settings.parse_line(r"DoubleBondsFromName=\d+:\d+")
        with self.assertRaises(RulesError):
            settings.parse_line(r"DoubleBondsFromName=(\d+")

    def test_identification_order(self):
        settings = GeneralSettings()
        settings.parse_line("MSIdentificationOrder=msnonly")
        self.assertEqual(settings.identification_order, IdentificationOrder.msn_only)
        self.assertEqual(settings.identification_order.literal, "MSnOnly")
        with self.assertRaises(RulesError):
            settings.parse_line("MSIdentificationOrder=MS2First")

    def test_other_adducts(self):
        settings = GeneralSettings()
        settings.parse_line("ValidOnlyWithOtherAdduct=H,Na")
        self.assertEqual(settings.other_adducts, OtherAdductRequirement(("H", "Na"), True))
        settings.parse_line("ValidOnlyWithOtherAdduct=H|Na")
        self.assertFalse(settings.other_adducts.require_all)
        with self.assertRaises(RulesError):
            settings.parse_line("ValidOnlyWithOtherAdduct=H,Na|NH4")

    def test_descriptor_assignment(self):
        settings = GeneralSettings()
        settings.amount_of_chains = 3
        settings.add_chain_positions = 1
        self.assertEqual(settings["AmountOfChains"], "3")
        self.assertEqual(settings.allowed_chain_positions, 4)
        settings.rt_postprocessing = True
        self.assertEqual(settings["RetentionTimePostprocessing"], "true")
        del settings.rt_postprocessing
        self.assertNotIn("RetentionTimePostprocessing", settings)

    def test_acyl_chains(self):
        settings = GeneralSettings({"AmountOfChains": "3", "AlkylChains": 1, "AmountOfLCBs": "1"})
        self.assertEqual(settings.amount_of_acyl_chains, 1)

    def test_is_default(self):
        settings = GeneralSettings({"BasePeakCutoff": "0", "RetentionTimePostprocessing": "true"})
        self.assertTrue(settings.is_default("BasePeakCutoff"))
        self.assertFalse(settings.is_default("RetentionTimePostprocessing"))
        self.assertTrue(settings.is_default("SpectrumCoverage"))

    def test_lock(self):
        settings = GeneralSettings({"AmountOfChains": "2"})
        copy = settings.copy()
        copy.lock()
        with self.assertRaises(RulesError):
            copy.amount_of_chains = 1
        settings.amount_of_chains = 1
        self.assertEqual(copy.amount_of_chains, 2)


if __name__ == "__main__":
    unittest.main()
