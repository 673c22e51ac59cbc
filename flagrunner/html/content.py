from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

_LINK_RE = re.compile(r"(!?\[[^\]]*\])\(([^)\s]+)\)")
_AUDIO_SUFFIXES = (".mp3", ".m4a")


@dataclass(slots=True)
class MediaLinks:
    """Absolute media URLs found on a page, in document order."""

    images: list[str] = field(default_factory=list)
    audio: list[str] = field(default_factory=list)


def resolve_link(link: str, base_url: str, path_prefix: str | None = None) -> str:
    """Resolve ``link`` against ``base_url``.

    With ``path_prefix`` only the file name is kept and re-rooted under the
    prefix on the link's host, e.g. ``/dane/i/photo.png``.
    """

    absolute = urljoin(base_url, link)
    if path_prefix is None:
        return absolute
    name = PurePosixPath(urlparse(absolute).path).name
    return urljoin(absolute, f"/{path_prefix.strip('/')}/{name}")


def _unique(links: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(links))


def extract_media_links(html: str, base_url: str, path_prefix: str | None = None) -> MediaLinks:
    soup = BeautifulSoup(html, "html.parser")
    images = [
        resolve_link(tag["src"], base_url, path_prefix)
        for tag in soup.find_all("img", src=True)
    ]
    audio: list[str] = []
    for tag in soup.find_all("audio"):
        if tag.get("src"):
            audio.append(resolve_link(tag["src"], base_url, path_prefix))
        for source in tag.find_all("source", src=True):
            audio.append(resolve_link(source["src"], base_url, path_prefix))
    for anchor in soup.find_all("a", href=True):
        if urlparse(anchor["href"]).path.lower().endswith(_AUDIO_SUFFIXES):
            audio.append(resolve_link(anchor["href"], base_url, path_prefix))
    return MediaLinks(images=_unique(images), audio=_unique(audio))


def html_to_markdown(html: str, base_url: str, path_prefix: str | None = None) -> str:
    """Render the readable text of a page followed by its image and audio links."""

    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    for level in range(1, 7):
        for heading in soup.find_all(f"h{level}"):
            heading.string = f"{'#' * level} {heading.get_text(' ', strip=True)}"
    markdown = soup.get_text("\n", strip=True)

    links = extract_media_links(html, base_url, path_prefix)
    if links.images:
        markdown += "\n\n### Images:\n"
        markdown += "\n".join(f"![{PurePosixPath(urlparse(link).path).name}]({link})" for link in links.images)
    if links.audio:
        markdown += "\n\n### Audio:\n"
        markdown += "\n".join(f"[Audio]({link})" for link in links.audio)
    return markdown


def localize_links(markdown: str, file_map: Mapping[str, str]) -> str:
    """Point markdown links at local copies; unknown targets stay untouched."""

    def replace(match: re.Match[str]) -> str:
        label, target = match.groups()
        local = file_map.get(target)
        return f"{label}({local})" if local else match.group(0)

    return _LINK_RE.sub(replace, markdown)


def inject_descriptions(markdown: str, descriptions: Mapping[str, str], label: str = "Description") -> str:
    """Append ``**<label>:** text`` below every link whose target has a description."""

    def replace(match: re.Match[str]) -> str:
        description = descriptions.get(match.group(2))
        if description is None:
            return match.group(0)
        return f"{match.group(0)}\n**{label}:** {description}"

    return _LINK_RE.sub(replace, markdown)


__all__ = [
    "MediaLinks",
    "extract_media_links",
    "html_to_markdown",
    "inject_descriptions",
    "localize_links",
    "resolve_link",
]
