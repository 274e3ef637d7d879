"""Offline maintenance for stored GIFs: dedupe, URL backfill, orphan pruning, wipe.

These operations are destructive and are only exposed through
``scripts/maintenance.py``, never over HTTP.
"""

import logging
from collections import defaultdict

from sqlalchemy.orm import Session

from gifshare.models.gif import Gif
from gifshare.services.gifs import build_urls
from gifshare.services.storage import UploadStorage

logger = logging.getLogger(__name__)


class MaintenanceService:
    """Service for administrative cleanup of Gif rows and stored files."""

    def __init__(self, db: Session, storage: UploadStorage):
        self.db = db
        self.storage = storage

    def remove_duplicates(self) -> int:
        """Collapse each owner's byte-identical uploads onto the oldest copy.

        Returns the number of Gifs removed.
        """
        groups: dict[tuple[int, str], list[Gif]] = defaultdict(list)
        for gif in self.db.query(Gif).order_by(Gif.created_at, Gif.id).all():
            if not self.storage.exists(gif.filename):
                continue
            groups[(gif.user_id, self.storage.digest(gif.filename))].append(gif)

        duplicates = [gif for group in groups.values() for gif in group[1:]]
        filenames = [gif.filename for gif in duplicates]
        for gif in duplicates:
            self.db.delete(gif)
        self.db.commit()

        for filename in filenames:
            self.storage.remove(filename)
        logger.info(f"Removed {len(filenames)} duplicate GIF(s)")
        return len(filenames)

    def backfill_urls(self, base_url: str) -> int:
        """Rewrite every Gif's direct and share URLs from ``base_url``.

        Returns the number of rows changed.
        """
        updated = 0
        for gif in self.db.query(Gif).all():
            filepath, share_url = build_urls(base_url, gif.filename)
            if gif.filepath != filepath or gif.share_url != share_url:
                gif.filepath = filepath
                gif.share_url = share_url
                updated += 1
        self.db.commit()
        logger.info(f"Backfilled URLs on {updated} GIF(s)")
        return updated

    def prune_orphans(self) -> tuple[int, int]:
        """Drop rows whose file is gone and files that no row points at.

        Returns (rows removed, files removed).
        """
        gifs = self.db.query(Gif).all()
        known = {gif.filename for gif in gifs}

        missing = [gif for gif in gifs if not self.storage.exists(gif.filename)]
        for gif in missing:
            self.db.delete(gif)
        self.db.commit()

        stray = [f.name for f in self.storage.list_files() if f.name not in known]
        for name in stray:
            self.storage.remove(name)

        logger.info(f"Pruned {len(missing)} orphan row(s) and {len(stray)} stray file(s)")
        return len(missing), len(stray)

    def wipe(self) -> int:
        """Delete every Gif row and every stored file. Returns rows deleted."""
        count = self.db.query(Gif).delete(synchronize_session=False)
        self.db.commit()
        for f in self.storage.list_files():
            self.storage.remove(f.name)
        logger.warning(f"Wiped {count} GIF(s) and all stored files")
        return count
