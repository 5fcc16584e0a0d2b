"""
Collection access and metadata.
"""

import logging
from typing import Any, Optional

from .client import ArchiveItClient
from .errors import NetworkError
from .models import CollectionState


def metadata_value(record: Any, field: str) -> Optional[str]:
    """
    First value of an Archive-It metadata field.

    Archive-It stores metadata as `{"metadata": {"Title": [{"value": ...}]}}`.
    Returns None when any level is missing or empty.
    """
    if not isinstance(record, dict):
        return None
    metadata = record.get('metadata')
    if not isinstance(metadata, dict):
        return None
    values = metadata.get(field)
    if not isinstance(values, list) or not values:
        return None
    first = values[0]
    if isinstance(first, dict):
        value = first.get('value')
        return value if isinstance(value, str) and value else None
    return None


class CollectionResolver:
    """
    Checks that the credentials give access to a collection and pulls its
    title and description.
    """

    ENDPOINT = "/api/collection"

    def __init__(self, client: ArchiveItClient, state: CollectionState, logger: Optional[logging.Logger] = None):
        self.client = client
        self.state = state
        self.logger = logger or logging.getLogger(__name__)

    @property
    def _params(self):
        return {'limit': 1, 'id': self.state.collection_id}

    def check_access(self):
        """
        HEAD the collection record with the configured credentials.

        Raises:
            AuthError: If the credentials are refused
            NetworkError: On any other non-200 status or transport failure
        """
        url = self.client.api_url(self.ENDPOINT)
        response = self.client.head(url, params=self._params)
        self.client.raise_for_status(response, url)

    def fetch_info(self):
        """
        Populate the collection title and description.

        Missing metadata fields leave the values as None.

        Raises:
            NetworkError: On non-200 status or transport failure
        """
        url = self.client.api_url(self.ENDPOINT)
        parsed = self.client.get_json(url, params=self._params)

        if not isinstance(parsed, list):
            raise NetworkError(f"Unexpected collection payload from {url}", url=url)

        collection = parsed[0] if parsed else None
        if collection is None:
            self.logger.warning(f"No collection record returned for {self.state.collection_id}")

        self.state.collection_title = metadata_value(collection, 'Title')
        self.state.collection_description = metadata_value(collection, 'Description')

        self.logger.info(f"Collection title: {self.state.collection_title or '(none)'}")
