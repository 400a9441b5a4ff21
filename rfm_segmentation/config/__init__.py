"""
RFM Customer Segmentation
Configuration Module
"""
from .settings import RFMSettings, Settings, get_settings

__all__ = ["RFMSettings", "Settings", "get_settings"]
