# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Outbox relay configuration properties."""

from __future__ import annotations

from dataclasses import dataclass

from txinsight.core.config import config_properties
from txinsight.transactional.outbox.core.policy import RetryPolicy


@config_properties(prefix="txinsight.outbox.relay")
@dataclass
class OutboxRelayProperties:
    """Relay settings bound from ``txinsight.outbox.relay``.

    YAML structure::

        txinsight:
          outbox:
            relay:
              enabled: true
              interval_ms: 1000
              batch_size: 0          # 0 = every eligible row
              concurrency: 1         # 1 = sequential
              publish_timeout_ms: 5000
              max_attempts: 1        # 1 = FAILED is terminal
              backoff_ms: 0
              backoff_multiplier: 2.0
    """

    enabled: bool = True
    interval_ms: int = 1000
    initial_delay_ms: int = 0
    batch_size: int = 0
    concurrency: int = 1
    publish_timeout_ms: int = 5000
    max_attempts: int = 1
    backoff_ms: int = 0
    backoff_multiplier: float = 2.0

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            backoff_ms=self.backoff_ms,
            backoff_multiplier=self.backoff_multiplier,
        )
