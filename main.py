#!/usr/bin/env python3
"""
InstaHarvest
Scrolls an Instagram profile, collects its posts and exports the job
"""

import argparse
import asyncio
import signal
import sys

from instaharvest import ScraperBuilder
from instaharvest.browser import open_session
from instaharvest.export import ExportFormat
from instaharvest.utils import ScraperError


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Collect posts from an Instagram profile page")
    parser.add_argument('--url', required=True, help="Profile or reels tab URL")
    parser.add_argument('--headless', action='store_true', help="Run the browser without a window")
    parser.add_argument('--storage-state', help="Saved browser session (cookies) for a logged-in profile")
    parser.add_argument('--format', default='json', choices=[f.value for f in ExportFormat] + ['excel'],
                        help="Export format for the collected job")
    parser.add_argument('--output-dir', help="Where exports are written (default: <data-dir>/downloads)")
    parser.add_argument('--data-dir', default='scrape_data', help="History, settings and logs directory")
    parser.add_argument('--no-auto-scroll', action='store_true',
                        help="Only read the page; scroll it yourself")
    parser.add_argument('--settle-delay', type=float, default=2.0,
                        help="Seconds to wait after each scroll")
    parser.add_argument('--tick-delay', type=float, default=1.0, help="Seconds between ticks")
    parser.add_argument('--log-level', default='INFO', help="Root log level")
    return parser.parse_args(argv)


async def main(args) -> int:
    """Main entry point for the harvester"""
    builder = (ScraperBuilder()
               .data_dir(args.data_dir)
               .log_level(args.log_level)
               .settle_delay(args.settle_delay)
               .tick_delay(args.tick_delay)
               .headless(args.headless)
               .with_logging())
    if args.output_dir:
        builder.downloads_dir(args.output_dir)
    if args.storage_state:
        builder.storage_state(args.storage_state)

    controller = builder.build()
    config = controller.config
    await controller.update_settings({'auto_scroll': not args.no_auto_scroll})

    session = await open_session(
        headless=config.headless,
        storage_state=config.storage_state,
        viewport_width=config.viewport_width,
        viewport_height=config.viewport_height,
    )

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, controller.stop)
    except NotImplementedError:
        pass  # Windows: Ctrl-C surfaces as KeyboardInterrupt instead

    try:
        await session.page.goto(args.url, wait_until='domcontentloaded')

        if controller.start(session.page) is None:
            print(f"❌ Could not start on {args.url}")
            return 1

        status = await controller.wait()
        controller.reporter.print_progress_report(status.current_username)
        print(f"\n{status.message} {status.count} posts collected.")

        path = await controller.download_partial(args.format)
        if path:
            print(f"💾 Exported to {path}")
        return 0
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass
        await session.close()


if __name__ == "__main__":
    print("📸 InstaHarvest Starting...")
    try:
        sys.exit(asyncio.run(main(parse_args())))
    except KeyboardInterrupt:
        print("\n🛑 Harvester stopped by user")
    except ScraperError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)
