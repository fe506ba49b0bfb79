from __future__ import annotations

from selenium import webdriver
from selenium.common.exceptions import InvalidSelectorException
from selenium.webdriver import ChromeOptions, FirefoxOptions
from selenium.webdriver.common.by import By

from selfheal.config.schema import BrowserSettings, LocatorKind
from selfheal.core.exceptions import InvalidQuerySyntax
from selfheal.core.metadata import BoundingBox
from selfheal.utils.dom_extract import css_string

DOM_DEPTH_SCRIPT = """
let depth = 0;
let node = arguments[0];
while (node && node.parentElement) {
  depth += 1;
  node = node.parentElement;
}
return depth;
"""

ELEMENT_AT_SCRIPT = "return document.elementFromPoint(arguments[0], arguments[1]);"


class BrowserSession:
    """Creates browser instances using Selenium Manager."""

    def __init__(self, settings: BrowserSettings) -> None:
        self.settings = settings

    def start(self, browser_name: str | None = None):
        normalized = (browser_name or self.settings.browser).lower()
        if normalized == "chrome":
            options = ChromeOptions()
            if self.settings.headless:
                options.add_argument("--headless=new")
            options.add_argument("--window-size=1440,1200")
            driver = webdriver.Chrome(options=options)
        elif normalized == "firefox":
            options = FirefoxOptions()
            if self.settings.headless:
                options.add_argument("-headless")
            driver = webdriver.Firefox(options=options)
        else:
            raise ValueError(f"Unsupported browser: {browser_name}")
        driver.set_page_load_timeout(self.settings.page_load_timeout_seconds)
        driver.implicitly_wait(0)
        return driver


class SeleniumElement:
    """Element handle backed by a Selenium ``WebElement``."""

    def __init__(self, web_element, driver) -> None:
        self.web_element = web_element
        self.driver = driver

    def get_attribute(self, name: str) -> str | None:
        value = self.web_element.get_attribute(name)
        return value or None

    def get_text(self) -> str:
        return self.web_element.text or ""

    def bounding_box(self) -> BoundingBox:
        rect = self.web_element.rect
        return BoundingBox(
            x=float(rect.get("x", 0.0)),
            y=float(rect.get("y", 0.0)),
            width=float(rect.get("width", 0.0)),
            height=float(rect.get("height", 0.0)),
        )

    def tag_name(self) -> str:
        return self.web_element.tag_name

    def dom_depth(self) -> int:
        return int(self.driver.execute_script(DOM_DEPTH_SCRIPT, self.web_element))

    def __eq__(self, other) -> bool:
        return isinstance(other, SeleniumElement) and other.web_element == self.web_element

    def __hash__(self) -> int:
        return hash(self.web_element)


class SeleniumPage:
    """Page snapshot view over a live Selenium driver."""

    def __init__(self, driver) -> None:
        self.driver = driver

    def query_all(self, query: str, kind: LocatorKind = LocatorKind.CSS) -> list[SeleniumElement]:
        by, value = self._by(query, kind)
        try:
            matches = self.driver.find_elements(by, value)
        except InvalidSelectorException as exc:
            raise InvalidQuerySyntax(f"Invalid {kind.value} query: {query}") from exc
        return [SeleniumElement(match, self.driver) for match in matches]

    def raw_markup(self) -> str:
        return self.driver.page_source

    def element_at(self, x: float, y: float) -> SeleniumElement | None:
        match = self.driver.execute_script(ELEMENT_AT_SCRIPT, x, y)
        if match is None:
            return None
        return SeleniumElement(match, self.driver)

    @staticmethod
    def _by(query: str, kind: LocatorKind) -> tuple[str, str]:
        if kind is LocatorKind.XPATH:
            return By.XPATH, query
        if kind is LocatorKind.ID:
            return By.ID, query
        if kind is LocatorKind.TESTID:
            return By.CSS_SELECTOR, f"[data-testid={css_string(query)}]"
        return By.CSS_SELECTOR, query
