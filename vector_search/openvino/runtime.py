"""
OpenVINO Inference Runtime
===========================
Owns one long-lived compiled encoder model and exposes a single async
``run`` contract: named input tensors in, named output tensors out.

OpenVINO reads the exported ONNX graph directly (``Core.read_model``
accepts ``.onnx`` as well as IR ``.xml``), so no conversion step is needed
before serving.

Threading model:
    - ``intra_op_threads`` -> ``INFERENCE_NUM_THREADS``: threads used to
      execute one request.
    - ``inter_op_threads`` -> ``NUM_STREAMS``: how many requests the
      device may execute in parallel.
    - A ``ThreadPoolExecutor`` runs the blocking ``infer`` calls so the
      caller's event loop is never blocked; the coroutine awaits the
      wrapped future.
    - Every call gets its own ``InferRequest``.  The compiled model itself
      is shared, read-only state, so concurrent ``run`` calls are safe.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

import numpy as np

from vector_search.errors import InternalError, InvalidArgument, ModelArtifactMissing

logger = logging.getLogger(__name__)

DEFAULT_INTRA_OP_THREADS = 20
DEFAULT_INTER_OP_THREADS = 40
DEFAULT_MAX_WORKERS = 4


class InferenceRuntime(ABC):
    """Capability interface: run the encoder on named inputs."""

    @property
    @abstractmethod
    def input_names(self) -> List[str]:
        ...

    @property
    @abstractmethod
    def output_names(self) -> List[str]:
        ...

    @abstractmethod
    async def run(
        self,
        inputs: Mapping[str, np.ndarray],
        wanted_outputs: Optional[Iterable[str]] = None,
    ) -> Dict[str, np.ndarray]:
        ...

    def close(self) -> None:
        """Release worker threads / sessions.  No-op by default."""

    def input_aliases(self) -> Dict[str, str]:
        """Every accepted input name -> the input it addresses."""
        return {name: name for name in self.input_names}

    # ------------------------------------------------------------------
    # Contract checks shared by every implementation
    # ------------------------------------------------------------------

    def validate_inputs(self, inputs: Mapping[str, np.ndarray]) -> None:
        if not inputs:
            raise InvalidArgument("Inputs cannot be empty.")
        valid = list(self.input_names)
        aliases = self.input_aliases()
        provided = list(inputs)
        invalid = [name for name in provided if name not in aliases]
        covered = {aliases[name] for name in provided if name in aliases}
        missing = [name for name in valid if name not in covered]
        if not invalid and not missing:
            return
        messages = []
        if invalid:
            messages.append(f"Invalid input name(s): {', '.join(invalid)}.")
        if missing:
            messages.append(f"Missing required input name(s): {', '.join(missing)}.")
        messages.append(f"Valid input names are: {', '.join(valid)}.")
        raise InvalidArgument(" ".join(messages))

    def resolve_outputs(self, wanted_outputs: Optional[Iterable[str]]) -> List[str]:
        """Return the output names to fetch, validating any explicit request."""
        valid = list(self.output_names)
        if wanted_outputs is None:
            return valid
        wanted = list(dict.fromkeys(wanted_outputs))
        if not wanted:
            raise InvalidArgument("Requested output names cannot be empty.")
        invalid = [name for name in wanted if name not in valid]
        if invalid:
            raise InvalidArgument(
                f"Invalid output name(s): {', '.join(invalid)}. "
                f"Valid output names are: {', '.join(valid)}."
            )
        return wanted


def _port_names(port) -> List[str]:
    names = port.get_names()
    return sorted(names) if names else [port.get_any_name()]


class OVRuntime(InferenceRuntime):
    """
    OpenVINO-backed runtime.

    Usage:
        runtime = OVRuntime.load("models/e5/model_O4.onnx", device="CPU")
        outputs = await runtime.run(tensors.as_feed(), {"last_hidden_state"})
        runtime.close()
    """

    def __init__(self, compiled_model, max_workers: int = DEFAULT_MAX_WORKERS):
        """
        Args:
            compiled_model : an ``openvino.CompiledModel``
            max_workers    : size of the worker pool running inference
        """
        self._compiled_model = compiled_model
        self._input_names = [inp.get_any_name() for inp in compiled_model.inputs]
        # A port may carry several tensor names; every one is addressable.
        self._input_aliases = {
            name: port.get_any_name()
            for port in compiled_model.inputs
            for name in _port_names(port)
        }
        self._output_names = list(dict.fromkeys(
            name for port in compiled_model.outputs for name in _port_names(port)
        ))
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="ov-infer"
        )
        logger.info(
            "Inference runtime ready: inputs=%s outputs=%s workers=%d",
            self._input_names,
            self._output_names,
            max_workers,
        )

    @classmethod
    def load(
        cls,
        model_path: Union[str, Path],
        device: str = "CPU",
        intra_op_threads: int = DEFAULT_INTRA_OP_THREADS,
        inter_op_threads: int = DEFAULT_INTER_OP_THREADS,
        max_workers: int = DEFAULT_MAX_WORKERS,
        core=None,
    ) -> "OVRuntime":
        """
        Read and compile the model.

        Compilation steps:
            1. Core.read_model()    -- parse the .onnx / .xml graph
            2. Core.compile_model() -- optimise for the target device with
               the configured thread and stream counts

        Raises:
            ModelArtifactMissing : model file does not exist
        """
        path = Path(model_path)
        if not path.is_file():
            logger.error("Model file not found at %s", path)
            raise ModelArtifactMissing(f"Model file not found at {path}")

        if core is None:
            import openvino as ov
            core = ov.Core()

        config = {
            "INFERENCE_NUM_THREADS": str(intra_op_threads),
            "NUM_STREAMS": str(inter_op_threads),
        }
        logger.info(
            "Compiling %s on %s (threads=%d, streams=%d)",
            path, device, intra_op_threads, inter_op_threads,
        )
        model = core.read_model(model=str(path))
        compiled = core.compile_model(model=model, device_name=device, config=config)
        return cls(compiled, max_workers=max_workers)

    @property
    def input_names(self) -> List[str]:
        return list(self._input_names)

    @property
    def output_names(self) -> List[str]:
        return list(self._output_names)

    def input_aliases(self) -> Dict[str, str]:
        return dict(self._input_aliases)

    def _infer(
        self, inputs: Mapping[str, np.ndarray], output_names: List[str]
    ) -> Dict[str, np.ndarray]:
        request = self._compiled_model.create_infer_request()
        results = request.infer(dict(inputs))
        wanted = set(output_names)
        outputs: Dict[str, np.ndarray] = {}
        for port, value in results.items():
            for name in _port_names(port):
                if name in wanted:
                    outputs[name] = np.asarray(value)
        return outputs

    async def run(
        self,
        inputs: Mapping[str, np.ndarray],
        wanted_outputs: Optional[Iterable[str]] = None,
    ) -> Dict[str, np.ndarray]:
        """
        Run inference without blocking the event loop.

        Raises:
            InvalidArgument : empty inputs, wrong input names, or unknown
                              output names
            InternalError   : the runtime returned a different number of
                              outputs than requested
        """
        self.validate_inputs(inputs)
        output_names = self.resolve_outputs(wanted_outputs)

        future = self._executor.submit(self._infer, inputs, output_names)
        outputs = await asyncio.wrap_future(future)

        if len(outputs) != len(output_names):
            raise InternalError(
                f"Expected {len(output_names)} outputs, but got {len(outputs)}."
            )
        return outputs

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        logger.debug("Inference worker pool shut down")
