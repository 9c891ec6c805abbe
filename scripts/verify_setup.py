"""
Setup Verification Script
==========================
Quick smoke-test that checks whether every required dependency is
importable and the configured model artifacts are in place.

Run after setting up the virtual environment:
    python scripts/verify_setup.py
    python scripts/verify_setup.py --settings configs/settings.yaml

Exit codes:
    0  -- all checks passed
    1  -- one or more checks failed
"""

import argparse
import importlib
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from vector_search.config import EmbeddingConfig, StoreConfig, load_settings  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

# (module_name, display_name, required)
REQUIRED_PACKAGES = [
    ("numpy", "NumPy", True),
    ("yaml", "PyYAML", True),
    ("openvino", "OpenVINO", True),
    ("sentencepiece", "SentencePiece", True),
    ("tqdm", "tqdm", False),
]


def check_python_version() -> bool:
    """Verify Python >= 3.9."""
    v = sys.version_info
    ok = v >= (3, 9)
    logger.info(
        "Python %d.%d.%d %s",
        v.major, v.minor, v.micro,
        "(OK)" if ok else "(FAIL: need >= 3.9)",
    )
    return ok


def check_package(module: str, display: str, required: bool) -> bool:
    """Try to import a package and report its version if available."""
    try:
        mod = importlib.import_module(module)
    except ImportError:
        tag = "MISSING (required)" if required else "MISSING (optional)"
        logger.warning("  %-30s  %s", display, tag)
        return not required  # optional packages don't cause failure
    version = getattr(mod, "__version__", None) or getattr(mod, "get_version", lambda: "unknown")()
    logger.info("  %-30s  %s", display, version)
    return True


def check_artifacts(config: EmbeddingConfig) -> bool:
    """Verify the encoder graph and the SentencePiece model exist."""
    ok = True
    for label, path in (("Model", config.model_path), ("Tokenizer", config.tokenizer_path)):
        if Path(path).is_file():
            logger.info("  %-30s  %s", label, path)
        else:
            logger.warning("  %-30s  NOT FOUND (%s)", label, path)
            ok = False
    return ok


def check_database(store_config: StoreConfig) -> bool:
    """Report whether ``cli.py prepare`` has been run.  Advisory only."""
    path = Path(store_config.database_path)
    if path.is_file():
        logger.info("  %-30s  %s", "Document database", path)
        return True
    logger.warning(
        "  %-30s  NOT FOUND (run: python cli.py prepare)", "Document database"
    )
    return False


def check_devices(preferred: str) -> bool:
    """List OpenVINO devices and the one the pipeline would use."""
    try:
        from vector_search.openvino.device_manager import DeviceManager
        dm = DeviceManager()
    except (ImportError, RuntimeError) as exc:
        logger.warning("  %-30s  UNAVAILABLE (%s)", "OpenVINO devices", exc)
        return False
    logger.info("  %-30s  %s", "OpenVINO devices", ", ".join(dm.list_devices()))
    logger.info("  %-30s  %s", "Selected device", dm.select(preferred))
    return True


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Verify the vector search setup")
    parser.add_argument("--settings", default=None, help="Path to settings.yaml")
    args = parser.parse_args(argv)

    settings = load_settings(args.settings)
    embedding_config = EmbeddingConfig.from_settings(settings)

    logger.info("=" * 60)
    logger.info("Vector Search -- Setup Verification")
    logger.info("=" * 60)

    all_ok = True

    logger.info("\n[1/5] Python version")
    all_ok &= check_python_version()

    logger.info("\n[2/5] Python packages")
    for module, display, required in REQUIRED_PACKAGES:
        all_ok &= check_package(module, display, required)

    logger.info("\n[3/5] Model artifacts")
    all_ok &= check_artifacts(embedding_config)

    logger.info("\n[4/5] OpenVINO devices")
    all_ok &= check_devices(embedding_config.device)

    logger.info("\n[5/5] Document database")
    check_database(StoreConfig.from_settings(settings))  # advisory only -- don't fail on this

    logger.info("\n" + "=" * 60)
    if all_ok:
        logger.info("All required checks PASSED.")
    else:
        logger.error("Some checks FAILED.  Fix the issues above and re-run.")
    logger.info("=" * 60)

    sys.exit(0 if all_ok else 1)


if __name__ == "__main__":
    main()
