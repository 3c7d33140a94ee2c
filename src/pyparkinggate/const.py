"""Constants for the parking authority REST API and push channel."""

DEFAULT_API_URI = "/api/v1"
DEFAULT_WS_PATH = "/ws"

LOGIN_ENDPOINT = "/auth/login"
GATES_ENDPOINT = "/master/gates"
ZONES_ENDPOINT = "/master/zones"
CATEGORIES_ENDPOINT = "/master/categories"
SUBSCRIPTION_ENDPOINT = "/subscriptions/{subscription_id}"
CHECKIN_ENDPOINT = "/tickets/checkin"
CHECKOUT_ENDPOINT = "/tickets/checkout"
TICKET_ENDPOINT = "/tickets/{ticket_id}"

ADMIN_PARKING_STATE_ENDPOINT = "/admin/reports/parking-state"
ADMIN_CATEGORY_ENDPOINT = "/admin/categories/{category_id}"
ADMIN_ZONE_OPEN_ENDPOINT = "/admin/zones/{zone_id}/open"
ADMIN_RUSH_HOURS_ENDPOINT = "/admin/rush-hours"
ADMIN_VACATIONS_ENDPOINT = "/admin/vacations"
ADMIN_SUBSCRIPTIONS_ENDPOINT = "/admin/subscriptions"

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "User-Agent": "pyparkinggate",
}

MESSAGE_SUBSCRIBE = "subscribe"
MESSAGE_UNSUBSCRIBE = "unsubscribe"
MESSAGE_ZONE_UPDATE = "zone-update"
MESSAGE_ADMIN_UPDATE = "admin-update"

DEFAULT_MAX_RECONNECT_ATTEMPTS = 5
DEFAULT_RECONNECT_DELAY = 1.0

# Seeded subscription ids probed when resolving the owner of a subscriber ticket.
DEFAULT_PROBE_SUBSCRIPTION_IDS = ("sub_001", "sub_002", "sub_003", "sub_004", "sub_005")

AUDIT_LOG_MAX_ENTRIES = 50
DEFAULT_CURRENCY = "SAR"
