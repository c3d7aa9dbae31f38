"""
Cloud Control
=============
Lets a small set of trusted nodes issue signed privileged commands
(currently: power off) to each other over HTTP.

Provides:
- RSA keypair storage and the trusted key set
- Signed, timestamped action envelopes
- Inbound request authentication with a freshness window
- Outbound command client and fan-out orchestration
"""

__version__ = "0.1.0"
