from typing import Any, Optional

from app.services.rpc import RpcClient


class OverviewService:
    """Dashboard figures are aggregated remotely by `get_admin_overview`."""

    def __init__(self, rpc: Optional[RpcClient] = None):
        self.rpc = rpc or RpcClient()

    def get_overview(self, token: Optional[str] = None) -> Any:
        return self.rpc.call("get_admin_overview", user_token=token)
