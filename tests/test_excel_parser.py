import pytest

from outreach_desk.domain import ValidationError
from outreach_desk.infrastructure.importer import SUPPORTED_EXTENSIONS, ExcelParser, parse_excel

CSV = (
    "Name,Skin Problems,Phone Number,uniqueId\n"
    "Ann,Acne,0300 1234567,k1\n"
    " Bob ,Eczema,+92 301 7654321,\n"
    ",Rosacea,111,k3\n"
    "Cat,Psoriasis,,k4\n"
).encode()


def test_parse_csv_detects_columns_and_rows():
    rows, columns = ExcelParser().parse_bytes(CSV, "prospects.csv")

    assert columns == {
        "name": "name",
        "category": "skin problems",
        "phone": "phone number",
        "key": "uniqueid",
    }
    assert [(r.name, r.category, r.phone_number, r.external_key) for r in rows] == [
        ("Ann", "Acne", "0300 1234567", "k1"),
        ("Bob", "Eczema", "+92 301 7654321", None),
    ]


def test_phone_numbers_stay_text():
    content = b"customer,concern,mobile\nAnn,Acne,00923001234567\n"

    rows, _ = ExcelParser().parse_bytes(content, "list.CSV")

    assert rows[0].phone_number == "00923001234567"
    assert rows[0].external_key is None


def test_unsupported_extension():
    with pytest.raises(ValidationError):
        ExcelParser().parse_bytes(b"irrelevant", "prospects.pdf")


def test_missing_phone_column():
    with pytest.raises(ValidationError, match="Phone"):
        ExcelParser().parse_bytes(b"name,category\nAnn,Acne\n", "prospects.csv")


def test_missing_name_column():
    with pytest.raises(ValidationError, match="Name"):
        ExcelParser().parse_bytes(b"category,phone\nAcne,111\n", "prospects.csv")


def test_corrupt_excel_is_a_validation_error():
    with pytest.raises(ValidationError):
        ExcelParser().parse_bytes(b"not a zip file", "prospects.xlsx")


def test_parse_from_disk(tmp_path):
    path = tmp_path / "prospects.csv"
    path.write_bytes(CSV)

    rows = parse_excel(str(path))

    assert len(rows) == 2


def test_parse_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ExcelParser().parse(str(tmp_path / "nope.csv"))


def test_legacy_xls_engine_is_installed():
    import xlrd

    assert ".xls" in SUPPORTED_EXTENSIONS
    assert callable(xlrd.open_workbook)
