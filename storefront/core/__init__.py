from storefront.core.config import StorefrontConfig, get_config, set_config

__all__ = ["StorefrontConfig", "get_config", "set_config"]
