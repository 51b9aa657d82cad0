APP_NAME = "Milk Ledger"

DATA_DIR = "data"
DB_FILE_NAME = "milk_ledger.db"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "2"

# Half a minor currency unit; dues closer to zero than this are treated as settled.
DUE_EPSILON = 0.005

DEFAULT_EXPENSE_CATEGORIES = ("Cattle feed", "Borrowed Milk from Dairy", "Other")

BACKUP_FILE_PREFIX = "milkwala_backup"

# Days shown on the delivery strip, including the reference day.
DELIVERY_STRIP_DAYS = 7
