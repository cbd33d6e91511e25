# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Tool handlers, one module per entity family.

Every handler takes the server context and a validated request model and
returns a JSON-serialisable dict with a ``success`` key. Failures are
raised as WisdomException subclasses and mapped to results by the server.
"""
