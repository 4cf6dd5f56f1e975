"""
Traveler

Interest-driven ingestion for a personal note inbox.

Components:
- Curator: pulls RSS sources, scores them against configured interests,
  deduplicates against a last-seen store and writes a small daily pick to Rote
- Ingress: webhook-to-notes server and a passive receiver that relays signed
  webhooks to an OpenClaw gateway

Usage:
    from traveler.common import load_config, RoteClient
    from traveler.curator import InterestScorer, SeenStore, select_items, run_once
    from traveler.ingress import create_webhook_app, create_receiver_app
"""

__version__ = "0.1.0"
