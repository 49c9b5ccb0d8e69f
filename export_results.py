"""Export report rows as CSV (default download) or Excel."""
import io

import pandas as pd
from openpyxl import load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, PatternFill

import config
from report import ReportRow


def to_dataframe(rows: list[ReportRow]) -> pd.DataFrame:
    return pd.DataFrame([row.as_list() for row in rows], columns=config.REPORT_COLUMNS, dtype=object)


def to_csv(rows: list[ReportRow]) -> bytes:
    """Header row is always written, even for no rows."""
    # \r\n terminator makes the writer quote fields holding either \r or \n
    text = to_dataframe(rows).to_csv(index=False, lineterminator="\r\n")
    return text.encode("utf-8")


def _worksheet_safe(row: ReportRow) -> list[str]:
    # Control characters are rejected by openpyxl; audited text may contain them
    return [ILLEGAL_CHARACTERS_RE.sub("", value) for value in row.as_list()]


def to_excel(rows: list[ReportRow]) -> bytes:
    buf = io.BytesIO()
    df = pd.DataFrame([_worksheet_safe(row) for row in rows], columns=config.REPORT_COLUMNS, dtype=object)
    df.to_excel(buf, index=False, engine="openpyxl")
    buf.seek(0)
    wb = load_workbook(buf)
    ws = wb.active
    # Header style
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.fill = PatternFill(start_color="DDDDDD", end_color="DDDDDD", fill_type="solid")
    # Operator input is data, never a formula
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            if cell.data_type == "f":
                cell.data_type = "s"
    status_col = config.REPORT_COLUMNS.index("Status") + 1
    green = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
    red = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
    for row in range(2, ws.max_row + 1):
        cell = ws.cell(row=row, column=status_col)
        if cell.value == config.STATUS_EXECUTED:
            cell.fill = green
        elif cell.value == config.STATUS_FAILED:
            cell.fill = red
    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()
