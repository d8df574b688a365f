"""
SentryAgent - LLM-driven security auditing of smart-contract repositories.

This package provides:
- Repository ingestion through a gitingest-compatible service
- Language classification of the ingested files
- Concurrent specialized LLM agents that report Solidity vulnerabilities
- A four-stage audit workflow exposed through a CLI and an HTTP API
"""

__version__ = "0.1.0"
