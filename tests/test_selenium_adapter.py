from __future__ import annotations

import pytest
from selenium.common.exceptions import InvalidSelectorException
from selenium.webdriver.common.by import By

from selfheal.config.schema import LocatorKind, ResolverSettings, SuiteConfig
from selfheal.core.browser import DOM_DEPTH_SCRIPT, ELEMENT_AT_SCRIPT, SeleniumElement, SeleniumPage
from selfheal.core.exceptions import InvalidQuerySyntax
from selfheal.core.finder import SafeFinder
from selfheal.core.resolver import Resolver


class FakeWebElement:
    def __init__(self, tag_name, attributes=None, text="", rect=None, depth=1):
        self.tag_name = tag_name
        self.attributes = attributes or {}
        self.text = text
        self.rect = rect or {"x": 1, "y": 2, "width": 30, "height": 40}
        self.depth = depth

    def get_attribute(self, name):
        if name == "id":
            return self.attributes.get("id", "")
        return self.attributes.get(name)


class FakeDriver:
    """Answers only the lookups the tests configure, like a tiny DOM."""

    def __init__(self, elements, page_source="<html></html>"):
        self.elements = elements
        self.page_source = page_source
        self.lookups = []

    def find_elements(self, by, value):
        self.lookups.append((by, value))
        if value.endswith("["):
            raise InvalidSelectorException("invalid selector")
        if by == By.ID:
            return [element for element in self.elements if element.attributes.get("id") == value]
        if by == By.CSS_SELECTOR and value == "*":
            return list(self.elements)
        if by == By.CSS_SELECTOR and value.startswith("#"):
            return [element for element in self.elements if element.attributes.get("id") == value[1:]]
        if by == By.CSS_SELECTOR and value.startswith("[data-testid="):
            expected = value[len("[data-testid=") : -1].strip('"')
            return [element for element in self.elements if element.attributes.get("data-testid") == expected]
        return []

    def execute_script(self, script, *args):
        if script == DOM_DEPTH_SCRIPT:
            return args[0].depth
        if script == ELEMENT_AT_SCRIPT:
            x, y = args
            for element in self.elements:
                rect = element.rect
                if rect["x"] <= x <= rect["x"] + rect["width"] and rect["y"] <= y <= rect["y"] + rect["height"]:
                    return element
            return None
        raise AssertionError(f"Unexpected script: {script}")


def test_page_maps_locator_kinds_to_selenium_lookups():
    driver = FakeDriver([FakeWebElement("button", {"id": "go", "data-testid": "go-btn"})])
    page = SeleniumPage(driver)
    assert len(page.query_all("go", LocatorKind.ID)) == 1
    assert len(page.query_all("go-btn", LocatorKind.TESTID)) == 1
    page.query_all("//button", LocatorKind.XPATH)
    assert driver.lookups == [
        (By.ID, "go"),
        (By.CSS_SELECTOR, '[data-testid="go-btn"]'),
        (By.XPATH, "//button"),
    ]


def test_page_translates_invalid_selectors():
    page = SeleniumPage(FakeDriver([]))
    with pytest.raises(InvalidQuerySyntax):
        page.query_all("#broken[")


def test_element_accessors_wrap_web_element():
    web_element = FakeWebElement("a", {"aria-label": "Home"}, text="Home", depth=5)
    element = SeleniumPage(FakeDriver([web_element])).query_all("*")[0]
    assert element.get_attribute("aria-label") == "Home"
    assert element.get_attribute("id") is None
    assert element.get_text() == "Home"
    assert element.tag_name() == "a"
    assert element.dom_depth() == 5
    box = element.bounding_box()
    assert (box.x, box.y, box.width, box.height) == (1.0, 2.0, 30.0, 40.0)
    assert element == SeleniumElement(web_element, None)


def test_element_at_and_raw_markup():
    web_element = FakeWebElement("button", rect={"x": 10, "y": 10, "width": 20, "height": 20})
    page = SeleniumPage(FakeDriver([web_element], page_source="<button></button>"))
    assert page.element_at(15, 15).web_element is web_element
    assert page.element_at(500, 500) is None
    assert page.raw_markup() == "<button></button>"


def test_safe_finder_heals_and_applies_promotions():
    driver = FakeDriver([FakeWebElement("button", {"id": "submit-order"}, text="Buy")])
    suite = SuiteConfig.model_validate(
        {
            "locators": [
                {
                    "locator_id": "buy",
                    "primary_query": "#buy-now",
                    "expected_attributes": {"id": "submit-order"},
                }
            ]
        }
    )
    resolver = Resolver.from_settings(ResolverSettings(promotion_window=2))
    finder = SafeFinder(driver, suite, resolver)

    assert finder.find("buy").web_element.attributes["id"] == "submit-order"
    assert finder.selector_overrides == {}
    finder.find("buy")
    assert finder.selector_overrides["buy"].new_query == "#submit-order"

    driver.lookups.clear()
    assert finder.find("buy").get_text() == "Buy"
    assert driver.lookups == [(By.CSS_SELECTOR, "#submit-order")]
    assert len(list(resolver.ledger.history("buy"))) == 2


def test_safe_finder_direct_query():
    driver = FakeDriver([FakeWebElement("button", {"id": "go"})])
    finder = SafeFinder(driver, SuiteConfig(), Resolver.from_settings())
    assert finder.find_by_query("#go").tag_name() == "button"
    assert finder.find_by_query("#nope") is None
