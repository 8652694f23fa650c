"""Default configuration parameters for the market data layer."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProviderParams:
    """Upstream quote provider endpoints and fallback behavior."""
    order: tuple = ("twelve_data", "alpha_vantage")   # Priority, synthetic is always last
    twelve_data_url: str = "https://api.twelvedata.com"
    alpha_vantage_url: str = "https://www.alphavantage.co/query"
    timeout_seconds: float = 10.0
    rate_limit_cooldown_seconds: float = 60.0           # Skip a rate-limited provider this long


@dataclass(frozen=True)
class CredentialParams:
    """API credentials, normally supplied through the environment."""
    twelve_data_api_key: str = "demo"
    alpha_vantage_api_key: str = "demo"
    news_api_key: str = ""                              # Empty disables NewsAPI
    marketaux_api_token: str = "demo"


@dataclass(frozen=True)
class PollingParams:
    """Subscription poll loop parameters."""
    interval_seconds: float = 5.0
    immediate_first_tick: bool = True


@dataclass(frozen=True)
class SyntheticParams:
    """Synthetic quote generator parameters."""
    trend_bias: float = 0.0             # Mean per-tick fractional drift
    volatility: float = 0.002           # Std dev of per-tick fractional move
    max_step_pct: float = 0.01          # Clamp on a single tick's move
    year_range_pct: float = 0.25        # Initial 52-week band around the seed
    min_seed_price: float = 50.0
    max_seed_price: float = 550.0
    seed_prices: dict = field(default_factory=dict)


@dataclass(frozen=True)
class NewsParams:
    """News provider endpoints and page sizes."""
    news_api_url: str = "https://newsapi.org/v2"
    marketaux_url: str = "https://api.marketaux.com/v1"
    default_query: str = "stock market OR finance OR economy OR trading"
    page_size: int = 20
    symbol_page_size: int = 10
    marketaux_symbols: tuple = ("TSLA", "AMZN", "MSFT")
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class PersistenceParams:
    """Local user data file."""
    path: str = "stockwise_data.json"


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    providers: ProviderParams
    credentials: CredentialParams
    polling: PollingParams
    synthetic: SyntheticParams
    news: NewsParams
    persistence: PersistenceParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        providers=ProviderParams(),
        credentials=CredentialParams(),
        polling=PollingParams(),
        synthetic=SyntheticParams(),
        news=NewsParams(),
        persistence=PersistenceParams(),
        logging=LoggingParams(),
    )
