from .excel_parser import ExcelParser, parse_excel, SUPPORTED_EXTENSIONS

__all__ = ["ExcelParser", "parse_excel", "SUPPORTED_EXTENSIONS"]
