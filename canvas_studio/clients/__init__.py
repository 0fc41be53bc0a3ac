from __future__ import annotations

"""
Collaborator gateways:
- protocols (contracts the core depends on)
- http (httpx REST clients)
- simulated (in-process generation/chat/project backends)
"""
