"""Main entry point for transcript task-graph extraction."""
import json
import logging
import sys
from pathlib import Path

import config

from .errors import TaskGraphError
from .pipeline_workflow import build_pipeline

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def _transcript_from_json(data) -> str:
    if isinstance(data, dict):
        for key in ("transcript_raw", "transcript"):
            if isinstance(data.get(key), str):
                return data[key]
    raise ValueError("Input JSON must contain a 'transcript_raw' or 'transcript' field")


def load_transcript(input_file: str) -> str:
    """
    Load transcript from input file.
    Supports both .txt (plain text) and .json (with transcript_raw field) formats.

    Args:
        input_file: Path to input file (.txt or .json)

    Returns:
        Transcript text as string
    """
    input_path = Path(input_file)
    content = input_path.read_text(encoding="utf-8")

    if input_path.suffix.lower() == ".json":
        logger.info("Reading transcript from JSON file: %s", input_file)
        return _transcript_from_json(json.loads(content))

    if input_path.suffix.lower() == ".txt":
        logger.info("Reading transcript from plain text file: %s", input_file)
        return content.strip()

    logger.info("Auto-detecting file format for: %s", input_file)
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        logger.info("File is not JSON, treating as plain text transcript")
        return content.strip()
    return _transcript_from_json(data)


def main():
    """CLI entry point for transcript task-graph extraction."""
    default_input = "transcript.txt"
    default_output = "task_graph.json"

    input_file = sys.argv[1] if len(sys.argv) > 1 else default_input
    output_file = sys.argv[2] if len(sys.argv) > 2 else default_output
    if len(sys.argv) < 2:
        logger.info("No arguments provided, using defaults: %s -> %s", input_file, output_file)

    pipeline = None
    try:
        logger.info("Loading input file: %s", input_file)
        transcript = load_transcript(input_file)
        if not transcript.strip():
            raise ValueError("Transcript is empty")
        logger.info("Input loaded (%d characters). Starting pipeline.", len(transcript))

        pipeline = build_pipeline()
        result = pipeline.process(transcript)

        logger.info("Writing output to: %s", output_file)
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(result.to_response(), f, indent=2, ensure_ascii=False)

        cyclic = sum(1 for task in result.tasks if task.status == "error")
        logger.info("Done. %d task(s), %d on a dependency cycle.", len(result.tasks), cyclic)
        logger.info("Results saved to %s", output_file)

    except FileNotFoundError:
        logger.error("Input file not found: %s", input_file)
        sys.exit(1)
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in input file: %s", e)
        sys.exit(1)
    except ValueError as e:
        logger.error("Invalid input format: %s", e)
        sys.exit(1)
    except TaskGraphError as e:
        logger.error("Pipeline error: %s", e)
        sys.exit(1)
    except Exception as e:
        logger.error("Error: %s", e, exc_info=True)
        sys.exit(1)
    finally:
        if pipeline is not None:
            pipeline.close()


if __name__ == "__main__":
    main()
