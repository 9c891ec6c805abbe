"""
OpenVINO subpackage -- inference runtime and hardware helpers.

Modules:
    runtime         -- InferenceRuntime interface and the OpenVINO session
    device_manager  -- detect and select inference devices
"""

from vector_search.openvino.device_manager import DeviceManager
from vector_search.openvino.runtime import InferenceRuntime, OVRuntime
