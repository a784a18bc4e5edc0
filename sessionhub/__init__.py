"""
Sessionhub - Platform Session Resolution

Resolves which captured login session (MarketInOut, TradingView, ...) to use
for a request, from the sessions a browser extension stores in Redis.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- session: Snapshot cache and session resolution
- storage: Session persistence in Redis
- config: Environment configuration
- api: REST API models
"""

__version__ = "1.0.0"
