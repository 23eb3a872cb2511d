"""Source-platform (Vercel) client and project models."""
