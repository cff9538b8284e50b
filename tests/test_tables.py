import csv
import os
import tempfile
import unittest

from fragrules import read_rules
from fragrules.expression import compile_equation
from fragrules.sections import Section
from fragrules.tables import document_to_rows, format_expression, infer_headers, write_csv, write_xlsx

from .common import datafile


class TestTables(unittest.TestCase):

    def test_format_expression(self):
        rule = compile_equation("(FragA-0.5*FragB)*2>FragC/4", Section.head, ["FragA", "FragB", "FragC"])
        self.assertEqual(format_expression(rule.bigger_expression), "2*(FragA-0.5*FragB)")
        self.assertEqual(format_expression(rule.smaller_expression), "0.25*FragC")

    def test_rows(self):
        document = read_rules(datafile("PC_H.frag.txt"))
        rows = list(document_to_rows(document))
        self.assertEqual(len(rows), 8)
        self.assertEqual(rows[0]["name"], "NL_PC")
        self.assertEqual(rows[2]["chain_type"], "$CHAIN")
        self.assertEqual(rows[-1]["bigger"], "LPC[1]")
        self.assertEqual(rows[-1]["section"], "[POSITION]")
        headers = infer_headers(rows)
        self.assertEqual(headers[:3], ["section", "kind", "name"])
        self.assertIn("smaller", headers)

    def test_write_csv(self):
        documents = [read_rules(datafile("PC_H.frag.txt")), read_rules(datafile("minimal.frag.txt"))]
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "rules.csv")
            write_csv(path, documents)
            with open(path, newline="") as fh:
                rows = list(csv.DictReader(fh))
        self.assertEqual(len(rows), 9)
        self.assertEqual(rows[-1]["rule_name"], "minimal")

    def test_write_xlsx(self):
        documents = [read_rules(datafile("PC_H.frag.txt")), read_rules(datafile("minimal.frag.txt"))]
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "rules.xlsx")
            write_xlsx(path, documents)
            self.assertGreater(os.path.getsize(path), 0)


if __name__ == "__main__":
    unittest.main()
