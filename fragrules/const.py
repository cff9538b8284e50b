"""A collection of constants"""

GENERAL_SECTION = "[GENERAL]"
HEAD_SECTION = "[HEAD]"
CHAINS_SECTION = "[CHAINS]"
POSITION_SECTION = "[POSITION]"

FRAGMENTS_SUBSECTION = "!FRAGMENTS"
INTENSITIES_SUBSECTION = "!INTENSITIES"

# [GENERAL] keys
AMOUNT_OF_CHAINS = "AmountOfChains"
ALKYL_CHAINS = "AlkylChains"
ALKENYL_CHAINS = "AlkenylChains"
AMOUNT_OF_LCBS = "AmountOfLCBs"
ADD_CHAIN_POSITIONS = "AddChainPositions"
CHAIN_LIBRARY = "ChainLibrary"
LCB_LIBRARY = "LCBLibrary"
CATOMS_FROM_NAME = "CAtomsFromName"
DOUBLE_BONDS_FROM_NAME = "DoubleBondsFromName"
BASE_PEAK_CUTOFF = "BasePeakCutoff"
CHAIN_CUTOFF = "ChainCutoff"
SPECTRUM_COVERAGE = "SpectrumCoverage"
RT_POSTPROCESSING = "RetentionTimePostprocessing"
RT_PARALLEL_SERIES = "RetentionTimeParallelSeries"
RT_MAX_DEVIATION = "RetentionTimeMaxDeviation"
SINGLE_CHAIN_IDENTIFICATION = "SingleChainIdentification"
MS_IDENTIFICATION_ORDER = "MSIdentificationOrder"
ENFORCE_PEAK_UNION_TIME = "EnforcePeakUnionTime"
IGNORE_POSITION_FOR_UNION = "IgnorePositionForUnion"
CLASS_SPECIFIC_MS1_CUTOFF = "ClassSpecificMS1Cutoff"
ISOBAR_SC_EXCLUSION_RATIO = "IsobarSCExclusionRatio"
ISOBAR_SC_FAR_EXCLUSION_RATIO = "IsobarSCFarExclusionRatio"
ISOBAR_RT_DIFF = "IsobarRtDiff"
VALID_ONLY_WITH_OTHER_ADDUCT = "ValidOnlyWithOtherAdduct"
OTHER_ADDUCT_VALIDITY_TOLERANCE = "OtherAdductValidityTolerance"
FORCE_OTHER_ADDUCT_VALIDITY = "ForceOtherAdductValidity"
CHOOSE_MORE_LIKELY_RT_WHEN_EQUAL = "ChooseMoreLikelyRtWhenOtherAdductEqual"

REQUIRED_GENERAL_KEYS = (
    AMOUNT_OF_CHAINS,
    CHAIN_LIBRARY,
    CATOMS_FROM_NAME,
    DOUBLE_BONDS_FROM_NAME,
)

# identification order literals, in ordinal order
MS1_FIRST = "MS1First"
MSN_FIRST = "MSnFirst"
MSN_ONLY = "MSnOnly"

# fragment and intensity line keys
FRAGMENT_NAME = "Name"
FRAGMENT_FORMULA = "Formula"
FRAGMENT_CHARGE = "Charge"
FRAGMENT_MS_LEVEL = "MSLevel"
FRAGMENT_MANDATORY = "mandatory"
INTENSITY_EQUATION = "Equation"

# reserved formula and equation tokens
PRECURSOR_NAME = "$PRECURSOR"
CHAIN_NAME = "$CHAIN"
ALKYL_CHAIN_NAME = "$ALKYLCHAIN"
ALKENYL_CHAIN_NAME = "$ALKENYLCHAIN"
LCB_NAME = "$LCB"
BASEPEAK_NAME = "$BASEPEAK"

CHAIN_LIBRARY_SUFFIXES = (".xlsx", ".xls")

RULE_FILE_SUFFIX = ".frag.txt"
DEFAULT_RULES_DIR = "fragRules"
