# File: modarchive/cli/archive.py
#!/usr/bin/env python3
from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from modarchive.backend.core.archiver.config import DEFAULT_ARCHIVE_NAME, PackagingConfig
from modarchive.backend.core.archiver.errors import ArchiverError
from modarchive.backend.core.archiver.orchestrator import ArchivePipeline
from modarchive.backend.core.configuration.loader import ConfigError, get_archiver
from modarchive.backend.core.spine.errors import SpineError
from modarchive.backend.core.spine.loader import build_registry
from modarchive.backend.core.utils.logging.logging import ConsoleLog


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modarchive",
        description="Prepare your module archive: copy, clean, add index guards, "
                    "install production dependencies and zip it for production.",
    )
    parser.add_argument(
        "real_path",
        nargs="?",
        default=None,
        help="The real path of your module (legacy; --path wins when both are given).",
    )
    parser.add_argument(
        "--exclude",
        default="",
        help="Comma-separated list of folders/files to exclude from the archive.",
    )
    parser.add_argument(
        "--path",
        type=Path,
        default=None,
        help="Path to the module to archive (default: current directory).",
    )
    parser.add_argument(
        "--module",
        default=None,
        help=f"Module name; the archive becomes <module>.zip and files are placed under "
             f"<module>/ inside it (default: {DEFAULT_ARCHIVE_NAME}.zip, no folder).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings YAML (default: <path>/.modarchive.yml when present).",
    )
    parser.add_argument(
        "--on-dependency-error",
        choices=("ignore", "fail"),
        default=None,
        help="What to do when dependency resolution fails (default: ignore).",
    )
    parser.add_argument(
        "--compression",
        choices=("deflate", "store"),
        default=None,
        help="Zip compression method (default: deflate).",
    )
    parser.add_argument(
        "--deterministic",
        action="store_true",
        default=None,
        help="Pin member timestamps so identical trees give byte-identical archives.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="List every file added to the archive.",
    )
    parser.add_argument(
        "--capabilities",
        type=Path,
        default=None,
        help="Alternative capabilities YAML for the external steps.",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log = ConsoleLog("archive")

    pipeline: Optional[ArchivePipeline] = None
    try:
        root = args.path or (Path(args.real_path) if args.real_path else None) or Path.cwd()
        settings = get_archiver(Path(root).expanduser().resolve(), args.config)
        cfg = PackagingConfig.build(
            path=root,
            exclude=args.exclude,
            module=args.module,
            settings=settings,
            dependency_policy=args.on_dependency_error,
            compression=args.compression,
            deterministic=args.deterministic,
            quiet=False if args.verbose else None,
        )
        pipeline = ArchivePipeline(cfg, registry=build_registry(args.capabilities), log=log)
        result = pipeline.run()
    except (ArchiverError, ConfigError, SpineError) as e:
        where = f" during {pipeline.state.value}" if pipeline is not None else ""
        log.error(f"{type(e).__name__}{where}: {e}")
        return 1

    if result.archive_path is None:
        log.warn("no files qualified; no archive written")
    else:
        log.info(f"done: {result.archive_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
