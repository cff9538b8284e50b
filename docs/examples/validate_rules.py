import glob
import logging
import sys

from fragrules import FragRuleParser, RulesError

logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
logger = logging.getLogger()

parser = FragRuleParser()
failures = {}
for path in sorted(glob.glob("fragRules/*.frag.txt")):
    try:
        parser.parse(path)
    except RulesError as err:
        failures[path] = err

logger.log(logging.WARN if failures else logging.INFO, f"Found {len(failures)} invalid rules files")
for path, err in failures.items():
    logger.warning(f"... {path}: {err}")
