
# Identifier derivation. Bump ID_ALGORITHM_VERSION only together with a data migration:
# every generated key in the wild changes with it.
ID_ALGORITHM_VERSION = 1
ID_NAMESPACE_NAME = "catalog-engine/product-id"

# Display label length for keys without an alias
DISPLAY_ID_LENGTH = 8

# Placeholder texts (canonical records never carry empty display text)
PLACEHOLDER_NAME = "Untitled product"
PLACEHOLDER_DESCRIPTION = "No description available."
UNAVAILABLE_DESCRIPTION = "This product is currently unavailable. Please try again later or contact support."

# Recently viewed
DEFAULT_RECENTLY_VIEWED_CAPACITY = 10
DEFAULT_RECENTLY_VIEWED_USERS = 10_000    # per-process users kept in memory, LRU beyond

# Separators turned into spaces when a raw id is used as a search phrase
SEARCH_ID_SEPARATORS = r"[-_+./:]+"
