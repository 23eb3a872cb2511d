"""cfconvert — convert Vercel-hosted Next.js projects to Cloudflare Workers."""

from cfconvert.version import __version__

__all__ = ["__version__"]
