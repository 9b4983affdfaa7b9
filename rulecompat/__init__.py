"""rulecompat - compatibility layer for a renamed rules-data package.

Redirects settings, entity flags, hook dispatch and sheet registrations
between a canonical identifier and its legacy aliases, rewrites embedded
cross-references, and gates one-time data migrations behind a persisted
schema version.
"""

__version__ = "0.1.0"
