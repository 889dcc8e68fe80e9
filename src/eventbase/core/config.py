"""Application configuration management using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="eventbase-core", description="Application name")
    environment: Literal["development", "testing", "staging", "production"] = Field(
        default="development", description="Runtime environment"
    )
    debug: bool = Field(default=False, description="Debug mode flag")

    # API
    api_v1_prefix: str = Field(default="/api/v1", description="API v1 prefix")
    allowed_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="CORS allowed origins",
    )

    # Base mainnet (Chain ID: 8453)
    blockchain_network: Literal["testnet", "mainnet"] = Field(
        default="testnet", description="Blockchain network selection"
    )
    base_rpc_url: str = Field(
        default="https://mainnet.base.org",
        description="Base mainnet RPC endpoint",
    )
    base_rpc_backup_urls: list[str] = Field(
        default=["https://base.llamarpc.com"],
        description="Backup Base mainnet RPC endpoints",
    )

    # Base Sepolia (Chain ID: 84532)
    base_sepolia_rpc_url: str = Field(
        default="https://sepolia.base.org",
        description="Base Sepolia RPC endpoint",
    )
    base_sepolia_backup_urls: list[str] = Field(
        default=[], description="Backup Base Sepolia RPC endpoints"
    )
    rpc_max_retries: int = Field(default=3, ge=1, description="Retries per RPC")
    rpc_retry_delay: float = Field(
        default=1.0, ge=0, description="Base delay between RPC retries (seconds)"
    )

    # Contract addresses
    testnet_event_ticketing_address: str = Field(
        default="0x12f537d03EfAD03924A2ce12cd6ABDe02693d3eF",
        description="Testnet EventTicketing contract",
    )
    testnet_ticket_nft_address: str = Field(
        default="0xc174678cc24B372a509A08dFA8d00f7AC678c459",
        description="Testnet TicketNft contract",
    )
    testnet_resale_market_address: str = Field(
        default="0x105003a5f52eA5D7d3a0872A467971bC31675376",
        description="Testnet TicketResaleMarket contract",
    )
    event_ticketing_address: str = Field(
        default=ZERO_ADDRESS, description="Mainnet EventTicketing contract"
    )
    ticket_nft_address: str = Field(
        default=ZERO_ADDRESS, description="Mainnet TicketNft contract"
    )
    resale_market_address: str = Field(
        default=ZERO_ADDRESS, description="Mainnet TicketResaleMarket contract"
    )

    # Stablecoins (Base mainnet)
    usdc_address: str = Field(
        default="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        description="USDC token address",
    )
    usdt_address: str = Field(
        default="0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2",
        description="USDT token address",
    )
    stablecoin_decimals: int = Field(default=6, description="USDC/USDT decimals")
    native_symbol: str = Field(default="BASE", description="Native asset display symbol")

    # Signer
    signer_private_key: str = Field(
        default="", description="Private key used to sign pipeline and claim writes"
    )
    gas_limit_multiplier: float = Field(
        default=1.2, ge=1.0, description="Multiplier applied to estimated gas"
    )

    # Receipts
    receipt_poll_interval: float = Field(
        default=2.0, gt=0, description="Receipt polling interval (seconds)"
    )
    receipt_timeout: float | None = Field(
        default=None, description="Receipt wait timeout, None waits indefinitely"
    )

    # Refunds
    refund_claim_delay_seconds: float = Field(
        default=1.0, ge=0, description="Spacing between batched claim submissions"
    )

    # Marketplace
    trending_ratio: float = Field(
        default=0.7, gt=0, le=1, description="Sell-through ratio marking an event trending"
    )
    default_event_image: str = Field(
        default="/metaverse-fashion-show.png", description="Fallback event image"
    )
    default_category: str = Field(default="Event", description="Fallback category")
    featured_limit: int = Field(default=4, ge=1, description="Featured view size")

    # Content store (Pinata)
    pinata_jwt: str = Field(default="", description="Pinata API JWT")
    pinata_gateway: str = Field(
        default="gateway.pinata.cloud", description="Pinata gateway host"
    )
    pinata_api_url: str = Field(
        default="https://api.pinata.cloud", description="Pinata API base URL"
    )
    upload_max_bytes: int = Field(
        default=5 * 1024 * 1024, description="Maximum upload size (5MB)"
    )
    allowed_image_types: list[str] = Field(
        default=["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"],
        description="Accepted image content types",
    )

    # Check-in ledger
    checkin_ledger_backend: Literal["memory", "redis"] = Field(
        default="memory", description="Where door check-ins are stored"
    )
    checkin_ledger_prefix: str = Field(
        default="checkin:", description="Redis key prefix for check-in ledger"
    )

    # Redis
    redis_host: str = Field(default="localhost", description="Redis host")
    redis_port: int = Field(default=6379, description="Redis port")
    redis_db: int = Field(default=0, description="Redis database number")
    redis_password: str | None = Field(default=None, description="Redis password")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="json", description="Log output format"
    )

    @computed_field
    @property
    def active_rpc_url(self) -> str:
        """Get RPC URL based on current network selection."""
        if self.blockchain_network == "testnet":
            return self.base_sepolia_rpc_url
        return self.base_rpc_url

    @computed_field
    @property
    def active_backup_rpc_urls(self) -> list[str]:
        """Get backup RPC URLs based on current network selection."""
        if self.blockchain_network == "testnet":
            return self.base_sepolia_backup_urls
        return self.base_rpc_backup_urls

    @computed_field
    @property
    def chain_id(self) -> int:
        """Get chain ID based on current network selection."""
        return 84532 if self.blockchain_network == "testnet" else 8453

    @computed_field
    @property
    def redis_url(self) -> str:
        """Construct Redis URL from components."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @computed_field
    @property
    def active_event_ticketing_address(self) -> str:
        """Get EventTicketing address for the active network."""
        if self.blockchain_network == "testnet":
            return self.testnet_event_ticketing_address
        return self.event_ticketing_address

    @computed_field
    @property
    def active_ticket_nft_address(self) -> str:
        """Get TicketNft address for the active network."""
        if self.blockchain_network == "testnet":
            return self.testnet_ticket_nft_address
        return self.ticket_nft_address

    @computed_field
    @property
    def active_resale_market_address(self) -> str:
        """Get TicketResaleMarket address for the active network."""
        if self.blockchain_network == "testnet":
            return self.testnet_resale_market_address
        return self.resale_market_address

    @computed_field
    @property
    def explorer_url(self) -> str:
        """Block explorer base URL for the active network."""
        if self.blockchain_network == "testnet":
            return "https://sepolia.basescan.org"
        return "https://basescan.org"

    @computed_field
    @property
    def is_mainnet(self) -> bool:
        """Check whether the mainnet is selected."""
        return self.blockchain_network == "mainnet"

    def require_mainnet_protection(self) -> None:
        """Guard sensitive chain writes on mainnet.

        Raises:
            ValueError: mainnet selected without a signer key or outside production
        """
        if self.is_mainnet:
            if not self.signer_private_key:
                raise ValueError(
                    "Mainnet writes require SIGNER_PRIVATE_KEY to be configured"
                )
            if self.environment != "production":
                raise ValueError(
                    f"Mainnet writes require environment=production, got {self.environment}"
                )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
