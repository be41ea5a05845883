from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

# Uniswap V2 Router02 on Ethereum mainnet
DEFAULT_ROUTER_ADDRESS = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"

DEFAULT_RESET_DELAY_SECONDS = 5.0
DEFAULT_SWAP_DEADLINE_SECONDS = 60 * 2


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["auto", "json", "console"] = Field(
        default="auto",
        description="Log rendering; auto picks console output for a terminal or DEBUG",
    )

    # Chain access
    rpc_url: str = Field(default="http://127.0.0.1:8545", description="JSON-RPC endpoint of the wallet/node")
    rpc_timeout_seconds: int = Field(default=30, ge=1, description="Request timeout for RPC calls")
    chain_id: int = Field(default=1, description="Chain ID stamped on prepared transactions")
    router_address: str = Field(
        default=DEFAULT_ROUTER_ADDRESS,
        description="Exchange router: approval spender and swap target",
    )

    # Interaction timing
    reset_delay_seconds: float = Field(
        default=DEFAULT_RESET_DELAY_SECONDS,
        ge=0,
        description="Delay before the exchange screen resets after a terminal outcome",
    )
    swap_deadline_seconds: int = Field(
        default=DEFAULT_SWAP_DEADLINE_SECONDS,
        ge=1,
        description="Seconds from submission after which a swap must be rejected on-chain",
    )

    # Submission
    gas_limit_buffer_percentage: int = Field(
        default=10,
        ge=0,
        description="Padding applied on top of eth_estimateGas",
    )
    confirmation_timeout_seconds: int = Field(
        default=300,
        ge=1,
        description="Max seconds to wait for a receipt before reporting a timeout",
    )
    confirmation_poll_interval_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Receipt polling cadence",
    )
    required_confirmations: int = Field(default=1, ge=1, description="Blocks required before success")
    swap_slippage_bps: Optional[int] = Field(
        default=None,
        ge=0,
        le=10_000,
        description="Optional slippage tolerance; unset accepts any positive output",
    )


# Global settings instance
settings = Settings()
