import os

data_path = os.path.join(os.path.dirname(__file__), "test_data")


def datafile(name):
    return os.path.join(data_path, name)


GENERAL = "\n".join([
    "[GENERAL]",
    "AmountOfChains=2",
    "ChainLibrary=fattyAcidChains.xlsx",
    r"CAtomsFromName=\D*(\d+):\d+",
    r"DoubleBondsFromName=\d+:(\d+)",
])


def rules_text(*lines, general=GENERAL):
    """Build a rules file from the standard ``[GENERAL]`` section and ``lines``."""
    return general + "\n" + "\n".join(lines) + "\n"
