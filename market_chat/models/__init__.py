from market_chat.models.user import User
from market_chat.models.listing import Listing, ListingImage
from market_chat.models.chat_room import ChatRoom
from market_chat.models.message import Message
from market_chat.models.price_offer import PriceOffer
from market_chat.models.notification import Notification

__all__ = [
    "User",
    "Listing",
    "ListingImage",
    "ChatRoom",
    "Message",
    "PriceOffer",
    "Notification",
]
