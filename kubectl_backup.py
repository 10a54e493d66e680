import argparse
import logging
import sys
from typing import List, Optional

from backup import backup
from errors import BackupError
from request import DEFAULT_NAMESPACE, BackupRequest, validate_request

logger = logging.getLogger("kubectl-backup")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kubectl-backup",
        description="Export live Kubernetes objects of one kind as re-appliable YAML manifests",
    )
    parser.add_argument(
        "resource",
        help="the Kubernetes resource to backup. e.g deployment, service,...",
    )
    parser.add_argument(
        "-n", "--namespace",
        default=DEFAULT_NAMESPACE,
        help="if the resource is namespaced, this flag sets the namespace scope",
    )
    parser.add_argument(
        "--dir",
        default=".",
        help="the directory where the resources will be saved",
    )
    parser.add_argument(
        "--zip",
        action="store_true",
        help="write all manifests into a single zip archive",
    )
    parser.add_argument("--context", help="kubeconfig context to use")
    parser.add_argument("--kubeconfig", help="path to the kubeconfig file")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    request = BackupRequest(
        resource=args.resource,
        namespace=args.namespace,
        directory=args.dir,
        archive=args.zip,
        context=args.context,
        kubeconfig=args.kubeconfig,
    )

    try:
        validate_request(request)
        logger.info(
            "backing up resource %s | namespace=%s dir=%s zip=%s",
            request.resource, request.namespace, request.directory, request.archive,
        )
        written = backup(request)
    except BackupError as e:
        logger.error("backup failed: %s", e)
        return 1

    logger.info("backup complete: %d manifest(s)", len(written))
    return 0


if __name__ == "__main__":
    sys.exit(main())
