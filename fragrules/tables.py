"""Flatten rule documents into tables and write them as spreadsheets or CSV."""
import csv
import itertools
import logging
import re

from typing import Any, Dict, Iterable, Iterator, List

import xlsxwriter

from fragrules.document import RuleDocument
from fragrules.expression import ComparisonExpression, IntensityRule
from fragrules.fragment import FragmentRule

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

# worksheet names are limited to 31 characters
MAX_SHEET_NAME_LENGTH = 31


def format_expression(expression: ComparisonExpression) -> str:
    parts = []
    for term in expression:
        text = term.fragment_name
        if term.position:
            text += f"[{term.position}]"
        if term.multiplier != 1:
            text = f"{term.multiplier_text}*{text}"
        parts.append(("+" if term.positive else "-") + text)
    text = "".join(parts).lstrip("+")
    if expression.global_multiplier != 1:
        text = f"{expression.global_multiplier_text}*({text})"
    return text


def fragment_to_row(fragment: FragmentRule) -> Dict[str, Any]:
    return {
        "section": fragment.section.header,
        "kind": "fragment",
        "name": fragment.name,
        "formula": fragment.formula,
        "charge": fragment.charge,
        "ms_level": fragment.ms_level,
        "mandatory": fragment.mandatory_level.literal,
        "chain_type": fragment.chain_type.token if fragment.chain_type is not None else None,
    }


def intensity_rule_to_row(rule: IntensityRule) -> Dict[str, Any]:
    row = {
        "section": rule.section.header,
        "kind": "or-rule" if rule.or_rule else "intensity",
        "equation": rule.source_equation,
        "mandatory": "true" if rule.mandatory else "false",
        "bigger": format_expression(rule.bigger_expression),
    }
    if rule.or_rule:
        row["bigger"] = " | ".join(rule.bigger_expression.fragment_names)
    else:
        row["smaller"] = format_expression(rule.smaller_expression)
    return row


def document_to_rows(document: RuleDocument) -> Iterator[Dict[str, Any]]:
    """Yield one row per fragment, then one row per intensity rule."""
    for fragment in document.iter_fragments():
        yield fragment_to_row(fragment)
    for rule in document.iter_intensity_rules():
        yield intensity_rule_to_row(rule)


def infer_headers(rows: Iterable[Dict[str, Any]]) -> List[str]:
    seen = set()
    keys = []
    for row in rows:
        for k in row:
            if k in seen:
                continue
            seen.add(k)
            keys.append(k)
    return keys


def document_to_worksheet(document: RuleDocument, sheet, wrap_fmt, default_fmt):
    rows = list(document_to_rows(document))
    headers = infer_headers(rows)
    sheet.write_row(0, 0, headers, default_fmt)

    for i, row in enumerate(rows, 1):
        sheet.write_row(i, 0, [row.get(k) for k in headers])

    for i, h in enumerate(headers):
        if h in ("equation", "bigger", "smaller", "formula"):
            sheet.set_column(i, i, 40, cell_format=wrap_fmt)
        elif h in ("charge", "ms_level", "mandatory", "kind"):
            sheet.set_column(i, i, 10, cell_format=default_fmt)
        else:
            sheet.set_column(i, i, 20, cell_format=default_fmt)


def _sheet_name(document: RuleDocument, index: int, used: set) -> str:
    base = re.sub(r"[\[\]:*?/\\]", "_", document.name or f"rules_{index}")
    name = base[:MAX_SHEET_NAME_LENGTH]
    for i in itertools.count(2):
        if name.lower() not in used:
            break
        suffix = f"_{i}"
        name = base[:MAX_SHEET_NAME_LENGTH - len(suffix)] + suffix
    used.add(name.lower())
    return name


def write_xlsx(outpath: str, documents: Iterable[RuleDocument]):
    """Write each document to its own worksheet of the workbook ``outpath``."""
    used = set()
    with xlsxwriter.Workbook(outpath) as wb:
        wrap_fmt = wb.add_format({"text_wrap": True, "align": "vcenter"})
        default_fmt = wb.add_format({"align": "vcenter"})
        for i, document in enumerate(documents, 1):
            sheet = wb.add_worksheet(_sheet_name(document, i, used))
            logger.debug("Writing worksheet %s", sheet.name)
            document_to_worksheet(document, sheet, wrap_fmt, default_fmt)


def write_csv(outpath: str, documents: Iterable[RuleDocument]):
    """Write all documents into one table with a ``rule_name`` column."""
    all_rows = []
    for document in documents:
        for row in document_to_rows(document):
            row["rule_name"] = document.name
            all_rows.append(row)
    headers = infer_headers(all_rows)
    if "rule_name" in headers:
        headers.remove("rule_name")
    headers = ["rule_name"] + headers
    with open(outpath, "wt", newline="") as fh:
        writer = csv.DictWriter(fh, headers)
        writer.writeheader()
        writer.writerows(all_rows)
        fh.flush()
