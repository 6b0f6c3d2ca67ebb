import webbrowser
from urllib.parse import urlencode

from iplookup.errors import DependencyError, IpNotFoundError
from iplookup.logger import logger
from iplookup.models.common import IPInfoData

MAPS_SEARCH_URL = "https://www.google.com/maps/search/"


def map_url(data: IPInfoData) -> str:
    coordinates = data.coordinates
    if coordinates is None:
        raise IpNotFoundError(f"No coordinates available for {data.ip}.")
    latitude, longitude = coordinates
    return f"{MAPS_SEARCH_URL}?{urlencode({'api': 1, 'query': f'{latitude},{longitude}'})}"


def open_map(data: IPInfoData) -> str:
    """Open the location of `data` in the default web browser and return the URL."""
    url = map_url(data)
    try:
        browser = webbrowser.get()
    except webbrowser.Error as exc:
        raise DependencyError(f"No web browser available to open {url}") from exc
    logger.info(f"Opening map url={url}")
    if not browser.open(url):
        raise DependencyError(f"Web browser failed to open {url}")
    return url
