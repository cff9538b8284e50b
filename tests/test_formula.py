import unittest

from fragrules.formula import (
    ChainType, ChemicalFormulaError, FormulaValidator, categorize_formula
)
from fragrules.fragment import FragmentRule
from fragrules.sections import Section
from fragrules.utils import RulesError


class TestCategorizeFormula(unittest.TestCase):

    def test_plain(self):
        self.assertEqual(categorize_formula("C5H14NO4P"), {"C": 5, "H": 14, "N": 1, "O": 4, "P": 1})

    def test_signs(self):
        self.assertEqual(categorize_formula("-H2O"), {"H": -2, "O": -1})
        self.assertEqual(categorize_formula("C2 H4-H2O"), {"C": 2, "H": 2, "O": -1})

    def test_two_letter_elements(self):
        self.assertEqual(categorize_formula("NaCl2"), {"Na": 1, "Cl": 2})

    def test_invalid(self):
        for text in ("2H", "h2O", "C5_H", "H2o"):
            with self.assertRaises(ChemicalFormulaError, msg=text):
                categorize_formula(text)


class TestFormulaValidator(unittest.TestCase):

    def setUp(self):
        self.validator = FormulaValidator()

    def test_precursor(self):
        analysis = self.validator.analyze("$PRECURSOR-C5H14NO4P")
        self.assertTrue(analysis.contains_precursor)
        self.assertIsNone(analysis.chain_type)
        self.assertEqual(analysis.elements["C"], -5)

    def test_precursor_must_be_added(self):
        with self.assertRaises(RulesError) as ctx:
            self.validator.analyze("H2O-$PRECURSOR")
        self.assertIn('Only a "+" can be before a $PRECURSOR', str(ctx.exception))

    def test_chain_tokens(self):
        self.assertEqual(self.validator.validate("$CHAIN-H"), ChainType.acyl)
        self.assertEqual(self.validator.validate("$ALKYLCHAIN+H"), ChainType.alkyl)
        self.assertEqual(self.validator.validate("$ALKENYLCHAIN"), ChainType.alkenyl)
        self.assertEqual(self.validator.validate("$LCB-H2O"), ChainType.lcb)
        analysis = self.validator.analyze("$PRECURSOR-$CHAIN")
        self.assertEqual(analysis.chain_sign, -1)
        self.assertTrue(analysis.contains_precursor)

    def test_references(self):
        lpc = FragmentRule("LPC", "$PRECURSOR-$CHAIN", chain_type=ChainType.acyl, section=Section.chains)
        analysis = self.validator.analyze("LPC-H2O", {}, {"LPC": lpc})
        self.assertEqual(analysis.references, [("LPC", 1)])
        self.assertEqual(analysis.chain_type, ChainType.acyl)

    def test_longest_reference_first(self):
        head = {
            "PC": FragmentRule("PC", "C5H14NO4P"),
            "PC_2": FragmentRule("PC_2", "C5H14NO4P"),
        }
        analysis = self.validator.analyze("PC_2-H2O", head)
        self.assertEqual(analysis.references, [("PC_2", 1)])

    def test_undefined_fragment(self):
        with self.assertRaises(RulesError) as ctx:
            self.validator.analyze("PC_X-H2O")
        self.assertIn("contains fragments that have not been defined before", str(ctx.exception))

    def test_unknown_element(self):
        with self.assertRaises(RulesError) as ctx:
            self.validator.analyze("C5Xx2")
        self.assertIn("contains the element Xx that has not been defined", str(ctx.exception))

    def test_custom_element_table(self):
        validator = FormulaValidator(elements={"C", "H", "O"})
        with self.assertRaises(RulesError):
            validator.analyze("C5H14NO4P")
        validator.analyze("C2H4O")


if __name__ == "__main__":
    unittest.main()
