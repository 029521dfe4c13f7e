"""
CLI interface for slides2pdf
"""
import argparse
import logging
import sys

from .config import ConfigProvider, Settings
from .orchestrator import DocumentDownloader
from .patterns import is_http_url


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser"""
    parser = argparse.ArgumentParser(
        description="Download a Scribd/SlideShare document as a PDF"
    )

    parser.add_argument(
        "url",
        help="Document URL (https://www.scribd.com/document/...)"
    )

    parser.add_argument(
        "--mode",
        choices=["/i", "/d"],
        default="/i",
        help="Download mode (image or direct)"
    )

    parser.add_argument(
        "--config",
        help="Path to the YAML config file"
    )

    parser.add_argument(
        "--output-dir", "-o",
        help="Directory for the generated PDF (overrides DIRECTORY.output)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    return parser


def main(argv=None):
    """Main CLI entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(message)s",
    )

    if not is_http_url(args.url):
        print(f"Error: not an http(s) URL: {args.url}", file=sys.stderr)
        sys.exit(1)

    config = ConfigProvider.from_file(args.config or Settings().config_path)
    if args.output_dir:
        data = config.as_dict()
        data.setdefault("DIRECTORY", {})["output"] = args.output_dir
        config = ConfigProvider(data, source=config.source)

    downloader = DocumentDownloader(config=config)

    try:
        if args.verbose:
            print(f"Downloading: {args.url}")
            print(f"Mode: {args.mode}")
            print(f"Output dir: {config.output_dir}")

        output_path = downloader.execute(args.url, mode=args.mode)
        print(f"PDF generated: {output_path}")
    except Exception as exc:
        if args.verbose:
            raise
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        downloader.fetcher.close()


if __name__ == "__main__":
    main()
