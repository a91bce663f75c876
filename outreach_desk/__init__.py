# Outreach Desk - Prospect Import & WhatsApp Outreach
# ====================================================
# Imports a prospect list from Google Sheets (or an uploaded spreadsheet),
# keeps a local prospect store in sync with it, and sends templated
# WhatsApp messages while tracking per-prospect delivery status.
#
# ARCHITECTURE LAYERS:
# - Presentation:   FastAPI dashboard / JSON API, console campaign runner
# - Application:    Reconciliation and dispatch use cases
# - Domain:         Prospect model, message template, error taxonomy
# - Infrastructure: External services (WhatsApp, Google Sheets, Excel, SQLite)
#
# Infrastructure components are injected, so the sheet source, the messaging
# provider or the store backend can be swapped without touching the use cases.
