"""
Main module for CDP Pilot.
Opens a tab, navigates it and reports what it found.
"""
import argparse
import asyncio
import logging
from typing import Optional

from cdp_pilot.browser.browser import Browser
from cdp_pilot.browser.page import DEFAULT_TIMEOUT
from cdp_pilot.browser.waits import NAVIGATION_CRITERIA
from cdp_pilot.utils.logging import configure_logging


async def main(
    url: str,
    host: str = "localhost",
    port: int = 9222,
    wait_until: str = "networkidle2",
    timeout: float = DEFAULT_TIMEOUT,
    screenshot: Optional[str] = None,
) -> None:
    """
    Main function for CDP Pilot.

    Args:
        url: URL to navigate to
        host: Chrome DevTools host
        port: Chrome DevTools port
        wait_until: Navigation completion criterion
        timeout: Deadline for each page operation, in seconds
        screenshot: Screenshot file path
    """
    async with Browser(host, port, timeout=timeout) as browser:
        page = await browser.new_page()
        try:
            await page.goto(url, wait_until=wait_until)

            title = await page.evaluate("document.title")
            print(f"Page title: {title}")
            print(f"Page URL: {page.url}")

            if screenshot:
                with open(screenshot, "wb") as f:
                    f.write(await page.screenshot())
                print(f"Screenshot saved to: {screenshot}")
        finally:
            await page.close()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="CDP Pilot")
    parser.add_argument("url", help="URL to navigate to")
    parser.add_argument("--host", default="localhost", help="Chrome DevTools host")
    parser.add_argument("--port", type=int, default=9222, help="Chrome DevTools port")
    parser.add_argument(
        "--wait-until",
        default="networkidle2",
        choices=list(NAVIGATION_CRITERIA),
        help="When to consider the navigation complete",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Deadline for each page operation, in seconds",
    )
    parser.add_argument("--screenshot", help="Screenshot file path")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--trace-protocol", action="store_true", help="Log every command sent to the browser"
    )
    return parser.parse_args(argv)


def cli(argv=None) -> None:
    args = parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.debug else logging.INFO,
        log_file=args.log_file,
        trace_protocol=args.trace_protocol,
    )

    asyncio.run(
        main(
            args.url,
            args.host,
            args.port,
            args.wait_until,
            args.timeout,
            args.screenshot,
        )
    )


if __name__ == "__main__":
    cli()
