"""
Form interaction example for CDP Pilot.

Start Chrome with ``--remote-debugging-port=9222`` first.
"""
import asyncio
import logging

from cdp_pilot.browser import Browser

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    """Form interaction example using saucedemo.com."""
    async with Browser(port=9222) as browser:
        logger.info("Browser connected")

        async with await browser.new_page() as page:
            url = "https://www.saucedemo.com/"
            logger.info(f"Navigating to {url}")
            await page.goto(url, wait_until="networkidle0")

            logger.info("Typing username")
            username = await page.wait_for_selector("#user-name")
            await username.click()
            await page.keyboard.type("standard_user")

            logger.info("Typing password")
            password = await page.query_selector("#password")
            await password.click()
            await page.keyboard.type("secret_sauce")

            # Listen before clicking so the navigation cannot be missed
            navigation = asyncio.create_task(page.wait_for_navigation(wait_until="load"))
            await asyncio.sleep(0)
            logger.info("Clicking login button")
            login = await page.query_selector("#login-button")
            await login.click()
            await navigation

            logger.info(f"Current URL after login: {page.url}")
            items = await page.evaluate("() => document.querySelectorAll('.inventory_item').length")
            logger.info(f"Found {items} inventory items")


if __name__ == "__main__":
    asyncio.run(main())
