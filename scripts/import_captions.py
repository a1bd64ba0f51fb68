"""
Imports incidents from a text file of social media captions.
Usage: python scripts/import_captions.py captions.txt
"""
import logging
import sys
from pathlib import Path

# Add backend to path so the safeplace package can be imported
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))

from safeplace.services.ingestion.orchestrator import IngestionOrchestrator

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def import_captions_file(file_path: str) -> int:
    """
    Parse a caption document and ingest its incidents.

    Args:
        file_path: Path of the UTF-8 caption document

    Returns:
        Process exit code
    """
    path = Path(file_path)
    if not path.exists():
        print(f"File not found: {file_path}")
        return 1

    print(f"File: {file_path}")
    print("-" * 50)

    text = path.read_text(encoding="utf-8")
    result = IngestionOrchestrator.default().import_captions(text)

    print("-" * 50)
    print(f"Status: {result.status.value}")
    print(f"Found: {result.records_found}")
    print(f"New: {result.records_new}")
    print(f"Duplicate: {result.records_duplicate}")
    print(f"Failed: {result.records_failed}")
    print(f"Duration: {result.duration_ms}ms")
    if result.error:
        print(f"\n Error: {result.error}")

    return 0 if result.success else 1


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/import_captions.py <caption_file>")
        sys.exit(1)

    sys.exit(import_captions_file(sys.argv[1]))
