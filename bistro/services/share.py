"""
Share links for receipts: a WhatsApp deep link and an SMS URI.
Both are hand-offs; nothing is sent from here.
"""

import re
from urllib.parse import quote

WHATSAPP_SEND_URL = "https://api.whatsapp.com/send"

# Characters encodeURIComponent leaves alone.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_component(text: str) -> str:
    return quote(text, safe=_URI_COMPONENT_SAFE)


def whatsapp_link(contact: str, text: str) -> str:
    """Deep link that opens a chat with `contact` prefilled with `text`."""
    phone = re.sub(r"\D", "", contact)
    return f"{WHATSAPP_SEND_URL}?phone={phone}&text={encode_component(text)}"


def sms_link(contact: str, text: str) -> str:
    return f"sms:{contact}?body={encode_component(text)}"
