# Infrastructure Layer
# ====================
# Contains all external service integrations:
# - whatsapp/: messaging providers (Selenium WhatsApp Web, WhatsApp Cloud API)
# - sheets/: Google Sheets prospect source
# - importer/: Excel/CSV file parser
# - persistence/: prospect store (in-memory, SQLite)
# - config/: Environment and settings management
#
# This layer can be replaced entirely without affecting domain/application layers.
