"""
OpenVINO Device Manager
========================
Detects available OpenVINO hardware and resolves the configured device
string to one that can actually compile the encoder.

    CPU   -- always available, baseline
    GPU   -- Intel integrated / discrete GPU
    NPU   -- Neural Processing Unit on recent Intel CPUs
    AUTO  -- let OpenVINO pick, starting on CPU while others compile

Selection falls back to CPU when the preferred device is not present, so a
settings file written for one machine still starts on another.
"""

import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

PROPERTY_KEYS = (
    "FULL_DEVICE_NAME",
    "DEVICE_ARCHITECTURE",
    "OPTIMAL_NUMBER_OF_INFER_REQUESTS",
)


class DeviceManager:
    """
    Usage::

        dm = DeviceManager()
        dm.list_devices()          # ['CPU', 'GPU']
        dm.select("NPU")           # 'CPU' if no NPU present
    """

    def __init__(self, core=None):
        if core is None:
            import openvino as ov
            core = ov.Core()
        self._core = core
        self._devices: List[str] = list(core.available_devices)
        logger.info("OpenVINO devices: %s", self._devices)

    @property
    def core(self):
        """The underlying ``openvino.Core``, shared with the runtime."""
        return self._core

    def list_devices(self) -> List[str]:
        return list(self._devices)

    def select(self, preferred: str = "CPU") -> str:
        """
        Return the device string to pass to ``compile_model``.

        ``AUTO`` and ``MULTI:...`` are passed through untouched; OpenVINO
        resolves them itself.  A concrete device that is missing falls back
        to CPU with a warning.
        """
        name = preferred.upper()
        if name == "AUTO" or name.startswith("MULTI:"):
            logger.info("Selected device: %s (available: %s)", name, self._devices)
            return name
        if name in self._devices:
            logger.info("Selected device: %s", name)
            return name
        logger.warning(
            "Preferred device '%s' not available (have: %s). Falling back to CPU.",
            preferred,
            self._devices,
        )
        return "CPU"

    def device_properties(self, device: str) -> Dict[str, str]:
        """
        Readable properties for one device; keys the plugin does not
        support are left out.
        """
        props: Dict[str, str] = {}
        supported = self._supported_properties(device)
        for key in PROPERTY_KEYS:
            if supported is not None and key not in supported:
                continue
            try:
                props[key] = str(self._core.get_property(device, key))
            except RuntimeError as exc:
                logger.debug("Property %s unavailable for %s: %s", key, device, exc)
        return props

    def _supported_properties(self, device: str) -> Optional[List[str]]:
        try:
            return [str(p) for p in self._core.get_property(device, "SUPPORTED_PROPERTIES")]
        except RuntimeError as exc:
            logger.debug("SUPPORTED_PROPERTIES unavailable for %s: %s", device, exc)
            return None

    def device_summary(self) -> List[Dict[str, str]]:
        summaries = []
        for device in self.list_devices():
            props = self.device_properties(device)
            summaries.append({
                "device": device,
                "name": props.get("FULL_DEVICE_NAME", "Unknown"),
                "architecture": props.get("DEVICE_ARCHITECTURE", ""),
                "optimal_requests": props.get("OPTIMAL_NUMBER_OF_INFER_REQUESTS", ""),
            })
        return summaries
