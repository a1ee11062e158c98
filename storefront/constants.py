CURRENCIES = ("USD", "INR")

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
MAX_SKIP = 1_000_000
# largest value sqlite and the catalog's JSON peers store as an integer
MAX_QUANTITY = 2**63 - 1
MAX_IMAGES = 5

TITLE_MIN = 3
TITLE_MAX = 200
DESCRIPTION_MAX = 2000

ROLE_SELLER = "seller"
ROLE_ADMIN = "admin"
MUTATING_ROLES = (ROLE_SELLER, ROLE_ADMIN)

CART_ID_HEADER = "X-Cart-Id"
USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"

# cart messages
MSG_PRODUCT_NOT_FOUND = "Product not found"
MSG_NOT_IN_CART = "Product not found in cart"
MSG_PRICE_UNAVAILABLE = "Product price is unavailable"
MSG_EXCEEDS_STOCK = "Requested quantity exceeds available stock"
MSG_RESERVE_FAILED = "Unable to reserve stock for product"

# catalog messages
MSG_INVALID_PRODUCT_ID = "Invalid product id"
MSG_INVALID_SELLER_ID = "Invalid seller id"
MSG_INVALID_PRICE_JSON = "Invalid price format. Expected JSON string."
MSG_PRICE_REQUIRED = "Price information is required."
MSG_INSUFFICIENT_STOCK = "Insufficient stock"
