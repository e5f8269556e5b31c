"""
Configuration management for the pool.
"""
import json
import os
from dataclasses import dataclass, asdict
from decimal import Decimal


@dataclass
class PoolConfig:
    """Pool configuration. The swap fee is fixed and not configurable."""
    asset_a: str = "A"
    asset_b: str = "B"
    # Extra headroom over the oracle price before a swap counts as manipulation
    max_price_deviation: str = "0"

    @property
    def price_tolerance(self) -> Decimal:
        return Decimal(self.max_price_deviation)

    def __post_init__(self):
        if self.asset_a == self.asset_b:
            raise ValueError("Pool assets must differ")
        if Decimal(self.max_price_deviation) < 0:
            raise ValueError("max_price_deviation cannot be negative")


@dataclass
class OracleConfig:
    """TWAP oracle configuration."""
    window: int = 3600  # seconds


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 9090


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class Config:
    """Main configuration."""
    pool: PoolConfig
    oracle: OracleConfig
    monitoring: MonitoringConfig
    logging: LoggingConfig

    @classmethod
    def default(cls) -> 'Config':
        """Create default configuration."""
        return cls(
            pool=PoolConfig(),
            oracle=OracleConfig(),
            monitoring=MonitoringConfig(),
            logging=LoggingConfig()
        )

    @classmethod
    def from_file(cls, path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)

        return cls(
            pool=PoolConfig(**data.get('pool', {})),
            oracle=OracleConfig(**data.get('oracle', {})),
            monitoring=MonitoringConfig(**data.get('monitoring', {})),
            logging=LoggingConfig(**data.get('logging', {}))
        )

    def to_file(self, path: str):
        """Save configuration to JSON file."""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'pool': asdict(self.pool),
            'oracle': asdict(self.oracle),
            'monitoring': asdict(self.monitoring),
            'logging': asdict(self.logging)
        }
