"""
Pages manifest utilities.
Writes and reads the JSON Lines `pages.jsonl` handed to the WACZ writer:
a header line, then one record per page entry point.
"""

import json
import os
from typing import Dict, Any, Iterable, List

from ..core.models import PageEntry


PAGES_FORMAT = "json-pages-1.0"
PAGES_HEADER = {"format": PAGES_FORMAT, "id": "pages", "title": "All Pages"}


class PagesManifest:
    def __init__(self, path: str):
        self.path = path

    def write(self, pages: Iterable[PageEntry]) -> int:
        """Rewrite the manifest with the given pages. Returns the number of pages written."""
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        count = 0
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write(json.dumps(PAGES_HEADER, ensure_ascii=False) + "\n")
            for page in pages:
                f.write(json.dumps(page.to_dict(), ensure_ascii=False) + "\n")
                count += 1
        return count

    def iter_records(self) -> Iterable[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return
        with open(self.path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                yield json.loads(line)

    def read_pages(self) -> List[PageEntry]:
        """Page entries stored in the manifest (header excluded)."""
        pages = []
        for rec in self.iter_records():
            if 'format' in rec:
                continue
            pages.append(PageEntry(url=rec['url'], title=rec['title'], ts=rec['ts']))
        return pages
