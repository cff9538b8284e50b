from fragrules import read_rules

# Read a rules file
rules = read_rules("tests/test_data/PC_H.frag.txt")
print(rules)

# The settings of the [GENERAL] section, as written and typed
print(dict(rules.general_settings))
print(rules.general_settings.amount_of_chains, rules.general_settings.base_peak_cutoff)

# Fragments, keyed by name
for name, fragment in rules.chain_fragments.items():
    print(f"Name={name}; Formula={fragment.formula}; Chain={fragment.chain_type}")

# Check the intensity rules against some observed intensities
intensities = {"$BASEPEAK": 1000.0, "PC183": 800.0, "FA_H": 120.0, "LPC": 150.0}
for rule in rules.iter_intensity_rules():
    if rule.has_position:
        continue
    print(f"{rule.identifier}: {rule.is_fulfilled(intensities)}")
