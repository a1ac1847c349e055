from rendplus.models.device import DeviceRegistration

__all__ = ["DeviceRegistration"]
