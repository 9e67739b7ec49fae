# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Per-request caller context resolved once at the request boundary."""

from uuid import UUID

from pydantic import Field

from ..core.config import get_settings
from .base import BaseModelConfig


class RequestContext(BaseModelConfig):
    """Who is calling, and under which brand.

    ``user_id`` is ``None`` for anonymous callers. The brand is an explicit
    value chosen by the calling layer; the engine never derives it from
    session state.
    """

    user_id: UUID | None = Field(default=None, description="Authenticated user")
    brand: str = Field(
        default_factory=lambda: get_settings().default_brand,
        min_length=1,
        description="Tenant brand for user-facing messages",
    )

    @property
    def is_authenticated(self) -> bool:
        """Whether an identified user is making the request."""
        return self.user_id is not None

    def owns(self, owner_id: UUID | None) -> bool:
        """Whether this caller is the recorded owner."""
        return self.user_id is not None and owner_id == self.user_id
