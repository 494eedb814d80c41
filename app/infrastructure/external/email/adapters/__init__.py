"""Provider email adapters (Gmail REST, Microsoft Graph, Yahoo IMAP)."""

from app.infrastructure.external.email.adapters.gmail_adapter import GmailAdapter
from app.infrastructure.external.email.adapters.outlook_adapter import OutlookAdapter
from app.infrastructure.external.email.adapters.yahoo_imap_adapter import YahooImapAdapter

__all__ = ["GmailAdapter", "OutlookAdapter", "YahooImapAdapter"]
