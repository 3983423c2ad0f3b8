"""Program, function and mapping identifiers used on the ledger."""

ROOM_MANAGER_PROGRAM = "room_manager.aleo"
CREDITS_PROGRAM = "credits.aleo"

CREATE_ROOM = "rm_create_room"
JOIN_ROOM = "rm_join_room"
REQUEST_GAME_CREATION = "rm_request_game_creation"

ROOMS_MAPPING = "rooms"
ACCOUNT_MAPPING = "account"

TRANSFER_PRIVATE = "transfer_private"
TRANSFER_PUBLIC = "transfer_public"
TRANSFER_PRIVATE_TO_PUBLIC = "transfer_private_to_public"
TRANSFER_PUBLIC_TO_PRIVATE = "transfer_public_to_private"

TRANSFER_TYPES = (
    TRANSFER_PRIVATE,
    TRANSFER_PUBLIC,
    TRANSFER_PRIVATE_TO_PUBLIC,
    TRANSFER_PUBLIC_TO_PRIVATE,
)

MICROCREDITS_PER_CREDIT = 1_000_000
