"""
Lead Discovery Test Package.

This package contains unit tests for the lead discovery service modules.

Test categories:
- test_config.py: Configuration and environment variable loading
- test_logging_utils.py: Formatters and log context
- test_errors.py: Error taxonomy and failover policy
- test_models.py: Pydantic model validation and size clamping
- test_filters.py: Filter normalization of malformed input
- test_llm_client.py: Gemini REST client and model fallback chain
- test_translator.py: AI translation and heuristic fallback
- test_polling.py: Bounded polling policy
- test_wiza_client.py: Primary provider client
- test_hunter.py: Fallback provider client and two-stage search
- test_contacts.py: Contact normalization and table building
- test_orchestrator.py: End-to-end pipeline scenarios with fake clients
- test_api.py: HTTP surface
- test_cli.py: Command-line interface
"""

__all__ = []
