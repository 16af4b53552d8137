"""txinsight core: configuration."""

from txinsight.core.config import Config, config_properties

__all__ = ["Config", "config_properties"]
