"""Command line entry point.

Usage::

    python -m crible -props config.yaml

The corpus is read from the pickled list of documents named by the
``crible.corpus`` property.  Distributed optimization jobs are
launched with this same command line.
"""
from __future__ import annotations
from typing import List, Optional
import argparse, logging, pickle, sys
from crible.config import CorefConfig, load_config
from crible.document import Document
from crible.errors import ConfigurationError
from crible.optimize import SieveOrderOptimizer
from crible.progress import ProgressReport
from crible.system import SieveCoreferenceSystem


def load_corpus(path: str) -> List[Document]:
    with open(path, "rb") as f:
        documents = pickle.load(f)
    if not isinstance(documents, list):
        raise ConfigurationError(f"{path} does not contain a list of documents")
    return documents


def run(
    config: CorefConfig,
    logger: logging.Logger,
    progress_report: Optional[ProgressReport] = None,
) -> int:
    """Run the system described by ``config`` on its corpus, finding
    a sieve ordering first if asked to."""
    logger.info(f"configuration: {config.to_properties()}")
    if config.corpus is None:
        logger.error("no corpus given (crible.corpus property)")
        return 1
    documents = load_corpus(config.corpus)

    system = SieveCoreferenceSystem(config, logger=logger, progress_report=progress_report)
    if config.optimize_sieves and len(system.sieve_names) > 1:
        optimizer = SieveOrderOptimizer(system, logger=logger, progress_report=progress_report)
        ordering = optimizer.optimize(documents)
        system = system.with_sieves(ordering)

    score = system.run_and_score(documents)
    logger.info(f"final score: {score}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="crible", description="Sieve based deterministic coreference resolution"
    )
    parser.add_argument("-props", required=True, help="YAML configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug messages")
    parser.add_argument(
        "--progress", choices=["tqdm", "log"], default=None, help="progress reporting"
    )
    args = parser.parse_args(argv)

    config = load_config(args.props)

    logger = logging.getLogger("crible")
    logger.setLevel(logging.DEBUG if args.verbose else logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if not config.log_file is None:
        handlers.append(logging.FileHandler(config.log_file))
    for handler in handlers:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(handler)

    try:
        return run(config, logger, args.progress)
    finally:
        for handler in handlers:
            logger.removeHandler(handler)
            handler.close()


if __name__ == "__main__":
    sys.exit(main())
