# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Core infrastructure components for the policy lifecycle engine."""

from .cache import Cache
from .config import Settings, get_settings
from .database import Database
from .result_types import Err, Ok, Result

__all__ = ["get_settings", "Settings", "Database", "Cache", "Result", "Ok", "Err"]
