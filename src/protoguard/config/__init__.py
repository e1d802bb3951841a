"""Configuration for protoguard."""

from protoguard.config.settings import ProtoguardSettings, load_settings

__all__ = ["ProtoguardSettings", "load_settings"]
