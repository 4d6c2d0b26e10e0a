"""
RSS 2.0 feed assembly.

Builds the channel document by hand so the output is byte-stable:
same items + same lastBuildDate -> same bytes. Guids are derived from the
movie id, the feed id and the build day, never from randomness.
"""

import html
import re
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Iterable, List, Optional
from xml.sax.saxutils import escape

import pytz

from ..models import ChannelMeta, FeedItem, MovieCandidate, MovieDetails
from ..models.schemas import UNKNOWN_YEAR


TMDB_MOVIE_URL = "https://www.themoviedb.org/movie/{}"
UNKNOWN_DATE = "Unknown Date"
PLACEHOLDER_TITLE = "No movies found"
PLACEHOLDER_DESCRIPTION = "No movies matched your filters today. Check back tomorrow or loosen the filters."

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


# =============================================================================
# Formatting helpers
# =============================================================================

def escape_xml(value: Optional[str]) -> str:
    """Escape & < > " ' to their named entities."""
    if not value:
        return ""
    return escape(str(value), _XML_ENTITIES)


def cdata(value: str) -> str:
    """Wrap in CDATA, splitting any embedded terminator."""
    return "<![CDATA[" + value.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def format_runtime(minutes: Optional[int]) -> str:
    if not minutes:
        return "Unknown runtime"
    hours, remaining = divmod(int(minutes), 60)
    if hours == 0:
        return f"{remaining}m"
    return f"{hours}h {remaining}m"


def parse_release_date(value: Optional[str]) -> Optional[datetime]:
    """ISO-ish date string -> midnight UTC, or None if it isn't a date."""
    if not value:
        return None
    value = value.strip()
    for fmt in ("%Y-%m-%d", "%Y-%m", "%Y"):
        try:
            return pytz.UTC.localize(datetime.strptime(value, fmt))
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return pytz.UTC.localize(parsed)
    return parsed.astimezone(pytz.UTC)


def format_date(value: Optional[str]) -> str:
    """'2016-11-11' -> 'November 11, 2016'."""
    if not value:
        return "Unknown date"
    parsed = parse_release_date(value)
    if parsed is None:
        return value
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def rfc822(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = pytz.UTC.localize(moment)
    # usegmt only accepts the stdlib utc singleton
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


def publication_date(release_date: Optional[str]) -> str:
    parsed = parse_release_date(release_date)
    return rfc822(parsed) if parsed else UNKNOWN_DATE


def release_year(value: Optional[str]) -> Optional[int]:
    parsed = parse_release_date(value)
    return parsed.year if parsed else None


def slugify(title: Optional[str]) -> str:
    """Permalink-safe version of a title."""
    if not title:
        return ""
    slug = re.sub(r"[^\w\s-]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


def fallback_link(external_id: str) -> str:
    return TMDB_MOVIE_URL.format(external_id)


# =============================================================================
# Items
# =============================================================================

def rich_description(candidate: MovieCandidate, details: MovieDetails) -> str:
    """HTML body for <content:encoded>."""
    e = html.escape
    title = details.title or candidate.title
    year = (details.release_date or "")[:4] or (candidate.year if candidate.year != UNKNOWN_YEAR else "")

    facts = []
    if details.directors:
        facts.append(f"<p><strong>Director:</strong> {e(', '.join(details.directors))}</p>")
    if details.cast:
        facts.append(f"<p><strong>Cast:</strong> {e(', '.join(details.cast))}</p>")
    if details.genres:
        facts.append(f"<p><strong>Genres:</strong> {e(', '.join(details.genres))}</p>")
    if details.runtime_minutes:
        facts.append(f"<p><strong>Runtime:</strong> {format_runtime(details.runtime_minutes)}</p>")
    if details.vote_average:
        facts.append(f"<p><strong>Rating:</strong> {details.vote_average:.1f}/10</p>")
    facts.append(
        f"<p><strong>Release Date:</strong> {e(format_date(details.release_date or candidate.release_date))}</p>"
    )

    parts = ['<div style="font-family: Arial, sans-serif; max-width: 800px;">']
    parts.append('<div style="display: flex; margin-bottom: 20px;">')
    if details.poster_url:
        parts.append(
            f'<img src="{e(details.poster_url)}" alt="{e(title)}" style="width: 180px; margin-right: 20px;">'
        )
    parts.append("<div>")
    parts.append(f'<h2 style="margin-top: 0;">{e(title)}{f" ({e(year)})" if year else ""}</h2>')
    if details.tagline:
        parts.append(f'<p style="font-style: italic;">{e(details.tagline)}</p>')
    parts.append(f"<p>{e(details.overview)}</p>")
    parts.append('<div style="margin-top: 15px;">')
    parts.extend(facts)
    parts.append("</div></div></div>")

    if details.streaming_providers:
        parts.append(
            '<div style="margin-top: 15px;"><p><strong>Available on:</strong> '
            f"{e(', '.join(details.streaming_providers))}</p></div>"
        )

    if details.trailer_url:
        parts.append(
            '<div style="margin-top: 15px;"><p><strong>Trailer:</strong></p>'
            f'<p><a href="{e(details.trailer_url)}" target="_blank">Watch on YouTube</a></p></div>'
        )

    recommendations = details.recommendations[:3]
    if recommendations:
        parts.append('<div style="margin-top: 15px;"><p><strong>You might also like:</strong></p><ul>')
        for rec in recommendations:
            rec_year = (rec.release_date or "")[:4] or "N/A"
            rating = f"{rec.vote_average:.1f}/10" if rec.vote_average else "No rating"
            parts.append(f"<li><strong>{e(rec.title)}</strong> ({e(rec_year)}) - {rating}</li>")
        parts.append("</ul></div>")

    parts.append(
        '<div style="margin-top: 20px; font-size: 12px; color: #777; text-align: center;">'
        f'<p>Data from <a href="{fallback_link(e(candidate.external_id))}" style="color: #0066cc;">TMDB</a></p>'
        "</div>"
    )
    parts.append("</div>")
    return "".join(parts)


def to_feed_item(candidate: MovieCandidate, details: MovieDetails) -> FeedItem:
    """Join a catalog row with its metadata."""
    has_year = candidate.year and candidate.year != UNKNOWN_YEAR
    return FeedItem(
        external_id=candidate.external_id,
        title=f"{candidate.title} ({candidate.year})" if has_year else candidate.title,
        link=candidate.direct_url or fallback_link(candidate.external_id),
        publication_date=publication_date(candidate.release_date),
        plain_description=details.overview,
        rich_description_html=rich_description(candidate, details),
        enclosure_url=details.poster_url,
        categories=list(details.genres),
        year=candidate.year if has_year else None,
        runtime_minutes=details.runtime_minutes,
        vote_average=details.vote_average,
    )


# =============================================================================
# Documents
# =============================================================================

def _item_xml(item: FeedItem, guid: str) -> List[str]:
    lines = [
        "    <item>",
        f"      <title>{escape_xml(item.title)}</title>",
        f"      <link>{escape_xml(item.link)}</link>",
        f'      <guid isPermaLink="false">{escape_xml(guid)}</guid>',
        f"      <pubDate>{escape_xml(item.publication_date)}</pubDate>",
        f"      <description>{escape_xml(item.plain_description)}</description>",
        f"      <content:encoded>{cdata(item.rich_description_html)}</content:encoded>",
    ]
    if item.enclosure_url:
        lines.append(f'      <enclosure url="{escape_xml(item.enclosure_url)}" type="image/jpeg" />')
    for category in item.categories:
        lines.append(f"      <category>{escape_xml(category)}</category>")
    lines.append("    </item>")
    return lines


def render(items: Iterable[FeedItem], channel_meta: ChannelMeta) -> str:
    """
    Render items into an RSS 2.0 document.

    An empty item list still yields a full channel with one placeholder
    item, so readers always get valid XML.
    """
    build_date = channel_meta.last_build_date or datetime.now(pytz.UTC)
    build_day = (build_date if build_date.tzinfo else pytz.UTC.localize(build_date)).astimezone(pytz.UTC)
    day_key = build_day.strftime("%Y-%m-%d")
    self_url = channel_meta.self_url or channel_meta.link

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom" '
        'xmlns:content="http://purl.org/rss/1.0/modules/content/">',
        "  <channel>",
        f"    <title>{escape_xml(channel_meta.title)}</title>",
        f"    <link>{escape_xml(channel_meta.link)}</link>",
        f"    <description>{escape_xml(channel_meta.description)}</description>",
        f"    <language>{escape_xml(channel_meta.language)}</language>",
        f"    <lastBuildDate>{rfc822(build_date)}</lastBuildDate>",
        f'    <atom:link href="{escape_xml(self_url)}" rel="self" type="application/rss+xml" />',
    ]
    if channel_meta.image_url:
        lines.extend([
            "    <image>",
            f"      <url>{escape_xml(channel_meta.image_url)}</url>",
            f"      <title>{escape_xml(channel_meta.title)}</title>",
            f"      <link>{escape_xml(channel_meta.link)}</link>",
            "    </image>",
        ])

    items = list(items)
    for item in items:
        guid = f"movie-{item.external_id}-{channel_meta.feed_id}-{day_key}"
        lines.extend(_item_xml(item, guid))

    if not items:
        placeholder = FeedItem(
            external_id="none",
            title=PLACEHOLDER_TITLE,
            link=channel_meta.link,
            publication_date=rfc822(build_date),
            plain_description=PLACEHOLDER_DESCRIPTION,
            rich_description_html=f"<p>{PLACEHOLDER_DESCRIPTION}</p>",
        )
        lines.extend(_item_xml(placeholder, f"placeholder-{channel_meta.feed_id}-{day_key}"))

    lines.extend(["  </channel>", "</rss>"])
    return "\n".join(lines) + "\n"


def render_error(message: str) -> str:
    """Minimal valid RSS document carrying an error message."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel><title>Error</title>'
        f"<description>{escape_xml(message)}</description>"
        "</channel></rss>"
    )


def render_text_digest(items: Iterable[FeedItem], heading: str = "Daily Movie Discovery") -> str:
    """Plain-text version of a feed for chat bots and email."""
    items = list(items)
    lines = [heading, "=" * len(heading), ""]
    if not items:
        lines.append(PLACEHOLDER_DESCRIPTION)
        return "\n".join(lines) + "\n"

    for position, item in enumerate(items, start=1):
        lines.append(f"{position}. {item.title}")
        rating = f"{item.vote_average:.1f}/10" if item.vote_average else "No rating"
        lines.append(f"   Runtime: {format_runtime(item.runtime_minutes)} | Rating: {rating}")
        if item.categories:
            lines.append(f"   Genres: {', '.join(item.categories)}")
        lines.append(f"   {item.plain_description}")
        lines.append(f"   {item.link}")
        lines.append("")
    return "\n".join(lines)
