from .rpc import JsonRpcProvider, RpcError

__all__ = ["JsonRpcProvider", "RpcError"]
