"""
CacheScout
==========

An autonomous site-diagnostic agent that discovers pages, probes each for caching
behavior, infers installed plugins and CDN/hosting providers from passive signals,
runs cache experiments against the reference URL and optionally keeps monitoring
the site for drift.

Agent Loop: Reconnaissance → Decide → Analyze → Experiment → Synthesize → Monitor
"""

__version__ = "0.1.0"
