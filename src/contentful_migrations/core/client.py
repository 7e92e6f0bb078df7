import logging
import threading
from typing import Any

import requests

from ..config import STORAGE_CONTENT, Config

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/vnd.contentful.management.v1+json"
DEFAULT_ORDER = "sys.createdAt,sys.id"
STATE_SUCCESS = "success"


class ManagementClient:
    """Thin Content Management API client for one space.

    Implements the read side needed by the transfer engine (paginated
    listings and the migration version marker) and the single-record
    write calls used by the importer.  Each thread gets its own
    ``requests.Session``.
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.base_url = f"{config.base_url}/spaces/{config.space_id}"

    @property
    def session(self) -> requests.Session:
        """Returns the current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Bearer {self.config.access_token}",
                "Content-Type": CONTENT_TYPE,
            }
        )
        session.verify = not self.config.insecure
        return session

    def _environment_url(self, environment: str, path: str = "") -> str:
        return f"{self.base_url}/environments/{environment}{path}"

    def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send one API request and return the decoded JSON body.

        Raises:
            requests.HTTPError: On any non-2xx response.
        """
        logger.debug("%s %s %s", method, url, params or "")
        response = self._get_session().request(
            method,
            url,
            params=params,
            json=json,
            headers=headers,
            timeout=(10, 60),
        )
        response.raise_for_status()
        if not response.content:
            return {}
        return response.json()

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def _list(
        self,
        environment: str,
        collection: str,
        skip: int,
        limit: int,
        query: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "skip": skip,
            "limit": limit,
            "order": DEFAULT_ORDER,
        }
        params.update(query or {})
        return self._request(
            "GET", self._environment_url(environment, f"/{collection}"), params
        )

    def list_content_types(
        self, environment: str, skip: int = 0, limit: int = 1000
    ) -> dict[str, Any]:
        return self._list(environment, "content_types", skip, limit)

    def list_entries(
        self,
        environment: str,
        skip: int = 0,
        limit: int = 1000,
        query: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return self._list(environment, "entries", skip, limit, query)

    def list_assets(
        self, environment: str, skip: int = 0, limit: int = 1000
    ) -> dict[str, Any]:
        return self._list(environment, "assets", skip, limit)

    def list_environments(self) -> list[str]:
        """Return the ids of all environments of the space."""
        data = self._request("GET", f"{self.base_url}/environments")
        return [item["sys"]["id"] for item in data.get("items", [])]

    # ------------------------------------------------------------------
    # Migration state
    # ------------------------------------------------------------------

    def get_migration_version(self, environment: str) -> int | None:
        """Return the latest migration version applied to *environment*.

        With ``content`` storage the highest numeric id among the
        successful entries of the migration content type is used; when
        there are none (and always with ``tag`` storage) the name of the
        tag ``config.field_id`` is parsed as an integer.  Environments
        without that tag may still carry the version in the legacy
        ``config.field_id`` field of a migration entry.  Returns
        ``None`` if no marker exists.
        """
        if self.config.storage == STORAGE_CONTENT:
            versions = self._content_versions(environment)
            if versions:
                return max(versions)
        return self._tag_version(environment)

    def _tag_version(self, environment: str) -> int | None:
        url = self._environment_url(environment, f"/tags/{self.config.field_id}")
        try:
            tag = self._request("GET", url)
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                return self._legacy_version(environment)
            raise
        try:
            return int(tag.get("name") or 0)
        except ValueError:
            logger.warning(
                "Tag '%s' in %s does not hold a version: %r",
                self.config.field_id,
                environment,
                tag.get("name"),
            )
            return None

    def _legacy_version(self, environment: str) -> int | None:
        version = None
        for item in self._migration_entries(environment):
            field = (item.get("fields") or {}).get(self.config.field_id)
            if field is None:
                continue
            value = next(iter((field or {}).values()), None)
            try:
                version = int(value or 0)
            except (TypeError, ValueError):
                logger.warning(
                    "Field '%s' in %s does not hold a version: %r",
                    self.config.field_id,
                    environment,
                    value,
                )
                version = None
        if version is not None:
            logger.info(
                "Using legacy migration version %s from %s", version, environment
            )
        return version

    def _content_versions(self, environment: str) -> list[int]:
        versions: list[int] = []
        for item in self._migration_entries(environment):
            state = next(
                iter((item.get("fields", {}).get("state") or {}).values()),
                None,
            )
            record_id = item.get("sys", {}).get("id", "")
            if state == STATE_SUCCESS and record_id.isdigit():
                versions.append(int(record_id))
        return versions

    def _migration_entries(self, environment: str):
        """Yield every entry of the migration content type."""
        query = {"content_type": self.config.migration_content_type_id}
        skip = 0
        while True:
            try:
                page = self.list_entries(
                    environment, skip=skip, limit=self.config.page_size, query=query
                )
            except requests.HTTPError as e:
                # Unknown content type: migrations were never recorded here
                if e.response is not None and e.response.status_code in (400, 404):
                    return
                raise
            items = page.get("items") or []
            yield from items
            skip += len(items)
            if not items or skip >= page.get("total", 0):
                return

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def get_record(
        self, environment: str, collection: str, record_id: str
    ) -> dict[str, Any] | None:
        """Return the raw entry or asset, or ``None`` if it does not exist."""
        url = self._environment_url(environment, f"/{collection}/{record_id}")
        try:
            return self._request("GET", url)
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                return None
            raise

    def put_record(
        self,
        environment: str,
        collection: str,
        record_id: str,
        payload: dict[str, Any],
        version: int | None = None,
        content_type_id: str | None = None,
    ) -> dict[str, Any]:
        """Create or update an entry or asset.

        Args:
            version: Current version of an existing record.  Omitted
                when creating.
            content_type_id: Content type of a new entry.
        """
        headers: dict[str, str] = {}
        if version is not None:
            headers["X-Contentful-Version"] = str(version)
        elif content_type_id:
            headers["X-Contentful-Content-Type"] = content_type_id
        url = self._environment_url(environment, f"/{collection}/{record_id}")
        return self._request("PUT", url, json=payload, headers=headers)

    def publish_record(
        self, environment: str, collection: str, record_id: str, version: int
    ) -> dict[str, Any]:
        """Publish an entry or asset at *version*."""
        url = self._environment_url(
            environment, f"/{collection}/{record_id}/published"
        )
        return self._request(
            "PUT", url, headers={"X-Contentful-Version": str(version)}
        )
