# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""Model catalog holder for the "available models" readout."""

import logging
from typing import List, Optional

from .management import ManagementClient

lib_logger = logging.getLogger("quota_engine")


class ModelCatalog:
    """
    Latest model list fetched from the server.

    ``fetch`` propagates failures; the previous list is cleared first so a
    failed fetch leaves the catalog empty.
    """

    def __init__(self, client: ManagementClient):
        self._client = client
        self.models: List[str] = []
        self.loading = False
        self.error: Optional[str] = None

    async def fetch(self, base_url: str, api_key: Optional[str] = None) -> List[str]:
        self.loading = True
        self.error = None
        self.models = []
        try:
            self.models = await self._client.fetch_models(base_url, api_key)
        except Exception as e:
            self.error = str(e) or type(e).__name__
            raise
        finally:
            self.loading = False
        return list(self.models)

    def __len__(self) -> int:
        return len(self.models)
