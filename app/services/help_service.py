"""Help copy per tab. Content is admin-authored HTML and is returned as-is."""

import logging

from app.models.help_content import HelpContent
from app.services import store
from app.services.errors import INSUFFICIENT_PRIVILEGE, StoreError, ValidationError

logger = logging.getLogger(__name__)

EMPTY_HELP = "<p>No help content available for this section.</p>"


def _check_page(page_id):
    if page_id not in HelpContent.PAGE_IDS:
        raise ValidationError(f"Unknown help page '{page_id}'.")


def get_help(page_id):
    _check_page(page_id)
    row = store.find_row("help_content", page_id=page_id)
    return row.content if row and row.content else EMPTY_HELP


def all_help():
    return {row.page_id: row.content for row in store.list_rows("help_content", order_by="id")}


def set_help(page_id, content):
    """Update the page's row; insert one only when nothing matched."""
    _check_page(page_id)
    try:
        updated = store.update_where("help_content", {"content": content}, page_id=page_id)
        if not updated:
            store.insert_rows("help_content", {"page_id": page_id, "content": content})
    except StoreError as e:
        if e.code == INSUFFICIENT_PRIVILEGE:
            raise StoreError(f"{e.message} (Permission Denied)", code=e.code) from e
        raise
    logger.info(f"Help content saved for {page_id}")
    return content
