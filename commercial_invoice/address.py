from __future__ import annotations

from commercial_invoice.errors import InvoiceError
from commercial_invoice.models import Contact


def _city_line(contact: Contact) -> str:
    # City, State  ZIP  (all optional)
    line = contact.city
    if contact.state and line:
        line += ", "
    line += contact.state
    if contact.zip:
        line += "  " + contact.zip
    return line


def construct_address(contact: Contact) -> list[str]:
    """Mailing-label lines for *contact*, without blank entries."""
    if not contact.name.strip():
        raise InvoiceError("contact name is missing")
    if not contact.addr1.strip():
        raise InvoiceError("address line 1 is missing")

    lines = [
        contact.name,
        contact.addr1,
        contact.addr2,
        contact.addr3,
        _city_line(contact),
        contact.country,
    ]
    if contact.phone:
        lines.append("Phone: " + contact.phone)
    lines.append(contact.email)

    return [line for line in lines if line.strip()]
