"""Static site export."""

from opencache.static.site import (
    StaticSiteResult,
    generate_static_site,
    render_cache_info,
    render_redirects,
)

__all__ = [
    "StaticSiteResult",
    "generate_static_site",
    "render_cache_info",
    "render_redirects",
]
