"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
CONDUIT-QA - Conduit API test automation
A fluent REST client, Conduit domain services and TestRail result synchronization
"""

__version__ = "0.1.0"
