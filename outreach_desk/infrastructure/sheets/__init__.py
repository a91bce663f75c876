from .google_sheets import GoogleSheetSource, SheetHeaders

__all__ = ["GoogleSheetSource", "SheetHeaders"]
