# Copyright 2026 Albedo Telecom
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""
Errors raised or reported by SNMP table walks.

Only ConfigError is raised directly (at parse time). The walk errors are
terminal outcomes: the engine stores them on the WalkResult and hands
them to the listener instead of raising into transport threads.
"""


class WalkError(Exception):
    """Base class for all walk errors."""


class ConfigError(WalkError, ValueError):
    """Malformed or unresolvable configuration input."""


class AuthError(WalkError):
    """Security/credential failure reported for the agent. Never retried."""


class ProtocolError(WalkError):
    """
    Non-retryable error status from the agent, or tooBig after the retry
    budget is spent.
    """

    def __init__(self, message, error_status=None, error_index=None):
        super().__init__(message)
        self.error_status = error_status
        self.error_index = error_index


class FatalError(WalkError):
    """Unexpected failure while building, dispatching or handling a batch."""

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class WalkTimeoutError(WalkError, TimeoutError):
    """No response within the configured timeout across all attempts."""
