"""
Listing Form Engine

Schema-driven property listing forms: admin-authored templates rendered
into typed input contracts, options sourced from reference data, and a
moderation workflow gating what can happen to a submitted listing.
"""

__version__ = "0.1.0"
