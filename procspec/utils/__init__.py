from procspec.utils import logging, module_loader, serializers

__all__ = ("logging", "module_loader", "serializers")
