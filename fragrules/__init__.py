"""Lipid fragmentation rules compiler."""

from fragrules.utils import RulesError, RulesIOError, MissingSectionError, rule_file_name
from fragrules.general import GeneralSettings, IdentificationOrder, OtherAdductRequirement
from fragrules.formula import ChainType, FormulaValidator
from fragrules.sections import Section, Subsection
from fragrules.fragment import FragmentRule, MandatoryLevel
from fragrules.expression import (
    FragmentTerm, ComparisonExpression, IntensityRule, compile_equation, parse_intensity_line
)
from fragrules.document import RuleDocument

from fragrules.parser import FragRuleParser, read_rules, parse_rules_text
from fragrules.writer import RuleDocumentWriter, write_rules, rules_to_string
