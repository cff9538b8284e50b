import unittest

from fragrules.formula import ChainType
from fragrules.fragment import (
    FragmentRule, FragmentRuleCompiler, MandatoryLevel, parse_mandatory, tokenize_line
)
from fragrules.general import GeneralSettings
from fragrules.sections import Section
from fragrules.utils import RulesError


def settings(**kwargs):
    values = {"AmountOfChains": "2"}
    values.update(kwargs)
    return GeneralSettings(values)


class TestTokenize(unittest.TestCase):

    def test_whitespace(self):
        self.assertEqual(
            tokenize_line("Name=A  Formula=H2O\tCharge=1"),
            ["Name=A", "Formula=H2O", "Charge=1"])

    def test_compatibility_mode(self):
        self.assertEqual(
            tokenize_line("Name=A B\tFormula=H2O", compatibility_mode=True),
            ["Name=A B", "Formula=H2O"])


class TestMandatory(unittest.TestCase):

    def test_levels(self):
        self.assertIs(parse_mandatory("YES", Section.head), MandatoryLevel.true)
        self.assertIs(parse_mandatory("no", Section.head), MandatoryLevel.false)
        self.assertIs(parse_mandatory("quant", Section.head), MandatoryLevel.quant)
        self.assertIs(parse_mandatory("class", Section.chains), MandatoryLevel.class_)

    def test_class_outside_chains(self):
        with self.assertRaises(RulesError):
            parse_mandatory("class", Section.head, 3)

    def test_unknown(self):
        with self.assertRaises(RulesError):
            parse_mandatory("maybe", Section.head, 3)

    def test_intensity_literals(self):
        self.assertIs(parse_mandatory("true", Section.head, fragment=False), MandatoryLevel.true)
        with self.assertRaises(RulesError):
            parse_mandatory("other", Section.head, fragment=False)


class TestFragmentRuleCompiler(unittest.TestCase):

    def setUp(self):
        self.compiler = FragmentRuleCompiler()

    def test_head_fragment(self):
        rule = self.compiler.compile(
            "Name=NL_PC\tFormula=$PRECURSOR-C5H14NO4P\tCharge=1\tMSLevel=2\tmandatory=true",
            Section.head, {}, {}, settings(), 10)
        self.assertEqual(rule.name, "NL_PC")
        self.assertEqual(rule.ms_level, 2)
        self.assertTrue(rule.mandatory)
        self.assertTrue(rule.contains_precursor)
        self.assertIsNone(rule.chain_type)
        self.assertFalse(rule.is_chain_fragment)

    def test_defaults(self):
        rule = self.compiler.compile("Name=A Formula=H2O", Section.head, {}, {}, settings())
        self.assertEqual((rule.charge, rule.ms_level, rule.mandatory_level), (1, 2, MandatoryLevel.false))

    def test_chain_fragment(self):
        rule = self.compiler.compile("Name=FA_H Formula=$CHAIN-H", Section.chains, {}, {}, settings())
        self.assertEqual(rule.chain_type, ChainType.acyl)
        self.assertTrue(rule.is_chain_fragment)

    def test_other_level(self):
        rule = self.compiler.compile("Name=A Formula=H2O mandatory=other", Section.head, {}, {}, settings())
        self.assertTrue(rule.from_other_species)
        self.assertFalse(rule.mandatory)

    def test_missing_name(self):
        with self.assertRaises(RulesError) as ctx:
            self.compiler.compile("Formula=H2O", Section.head, {}, {}, settings(), 5)
        self.assertEqual(ctx.exception.line_number, 5)

    def test_reserved_characters_in_name(self):
        with self.assertRaises(RulesError):
            self.compiler.compile("Name=$A Formula=H2O", Section.head, {}, {}, settings())

    def test_missing_formula(self):
        with self.assertRaises(RulesError):
            self.compiler.compile("Name=A Charge=1", Section.head, {}, {}, settings())

    def test_unknown_key(self):
        with self.assertRaises(RulesError) as ctx:
            self.compiler.compile("Name=A Formula=H2O Colour=red", Section.head, {}, {}, settings())
        self.assertIn('does not support the key "Colour"', str(ctx.exception))

    def test_invalid_charge(self):
        with self.assertRaises(RulesError):
            self.compiler.compile("Name=A Formula=H2O Charge=0", Section.head, {}, {}, settings())
        with self.assertRaises(RulesError):
            self.compiler.compile("Name=A Formula=H2O Charge=one", Section.head, {}, {}, settings())
        with self.assertRaises(RulesError):
            self.compiler.compile("Name=A Formula=H2O Charge=1_0", Section.head, {}, {}, settings())
        with self.assertRaises(RulesError):
            self.compiler.compile("Name=A Formula=H2O MSLevel=\u0662", Section.head, {}, {}, settings())

    def test_duplicate_across_sections(self):
        head = {"A": FragmentRule("A", "H2O")}
        with self.assertRaises(RulesError) as ctx:
            self.compiler.compile("Name=A Formula=$CHAIN", Section.chains, head, {}, settings(), 12)
        self.assertEqual(
            ctx.exception.message,
            'The fragment "A" of the [CHAINS] section was already defined in the [HEAD] section! '
            'Names in rules must be unique all over the file!')

    def test_chain_quota(self):
        with self.assertRaises(RulesError) as ctx:
            self.compiler.compile(
                "Name=FA_H Formula=$CHAIN-H", Section.chains, {}, {}, settings(AlkylChains="2"), 9)
        self.assertEqual(
            ctx.exception.message,
            "The chain type $CHAIN is not allowed according to the general settings! "
            "Only $ALKYLCHAIN is allowed!")
        rule = self.compiler.compile(
            "Name=FA_H Formula=$ALKYLCHAIN-H", Section.chains, {}, {}, settings(AlkylChains="2"))
        self.assertEqual(rule.chain_type, ChainType.alkyl)

    def test_chain_quota_needs_chain_count(self):
        with self.assertRaises(RulesError):
            self.compiler.compile("Name=FA_H Formula=$CHAIN-H", Section.chains, {}, {}, GeneralSettings())


if __name__ == "__main__":
    unittest.main()
