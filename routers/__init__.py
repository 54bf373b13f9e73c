# routers/__init__.py
from .supply_chain import router as supply_chain_router

__all__ = [
     "supply_chain_router",
]
