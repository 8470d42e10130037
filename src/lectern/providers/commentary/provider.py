"""Commentary provider — Commentary collections served over HTTP.

Same wire layout as ``RemoteTextProvider``; commentaries live under
``content/commentaries`` and are listed in ``commentaries.json``. Entries
default to ``type="commentary"`` so reading windows can tell them apart
from bibles.
"""

from __future__ import annotations

from lectern.providers.remote.provider import RemoteTextProvider


class CommentaryProvider(RemoteTextProvider):
    """Serves commentaries (one section per chapter commented on)."""

    default_name = "commentary"
    default_texts_path = "commentaries.json"
    default_content_path = "content/commentaries"
    default_entry_type = "commentary"
