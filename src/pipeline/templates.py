# src/pipeline/templates.py — v1
"""Generated file contents and fixed values for the Cloudflare target.

Every renderer is a pure function of its arguments, so rewriting a file
with the same flags always produces the same bytes.
"""

from __future__ import annotations

import json
from typing import Any

ADAPTER_PACKAGE = "@opennextjs/cloudflare"
DEPLOY_CLI_PACKAGE = "wrangler"
LEGACY_ADAPTER_PACKAGE = "@cloudflare/next-on-pages"
FRAMEWORK_PACKAGE = "next"
KV_CACHE_MODULE = "@opennextjs/cloudflare/overrides/incremental-cache/kv-incremental-cache"

ADAPTER_CONFIG_FILENAME = "open-next.config.ts"
DEPLOY_CONFIG_FILENAME = "wrangler.jsonc"
IGNORE_FILENAME = ".gitignore"

BUILD_OUTPUT_DIR = ".open-next"
WRANGLER_SCHEMA = "node_modules/wrangler/config-schema.json"
WORKER_ENTRY = f"{BUILD_OUTPUT_DIR}/worker.js"
ASSETS_DIRECTORY = f"{BUILD_OUTPUT_DIR}/assets"
ASSETS_BINDING = "ASSETS"
KV_CACHE_BINDING = "NEXT_CACHE_WORKERS_KV"
COMPATIBILITY_DATE = "2024-12-30"
COMPATIBILITY_FLAGS: tuple[str, ...] = ("nodejs_compat",)

DEV_DEPENDENCIES: tuple[str, ...] = (
    f"{ADAPTER_PACKAGE}@latest",
    f"{DEPLOY_CLI_PACKAGE}@latest",
)

SCRIPTS: dict[str, str] = {
    "preview": "opennextjs-cloudflare && wrangler dev",
    "deploy": "opennextjs-cloudflare && wrangler deploy",
    "cf-typegen": "wrangler types --env-interface CloudflareEnv cloudflare-env.d.ts",
}

IGNORE_COMMENT = "# OpenNext build output"


def render_open_next_config(enable_kv_cache: bool) -> str:
    """Content of ``open-next.config.ts``."""
    lines = [f'import {{ defineCloudflareConfig }} from "{ADAPTER_PACKAGE}";']
    if enable_kv_cache:
        lines.append(f'import kvIncrementalCache from "{KV_CACHE_MODULE}";')
    lines += ["", "export default defineCloudflareConfig({"]
    if enable_kv_cache:
        lines.append("  incrementalCache: kvIncrementalCache,")
    lines.append("});")
    return "\n".join(lines) + "\n"


def build_wrangler_config(
    project_name: str,
    enable_kv_cache: bool = False,
    kv_namespace_id: str = "",
) -> dict[str, Any]:
    """Structured ``wrangler.jsonc`` document, keys in output order."""
    kv_namespaces: list[dict[str, str]] = []
    if enable_kv_cache and kv_namespace_id:
        kv_namespaces.append({"binding": KV_CACHE_BINDING, "id": kv_namespace_id})
    return {
        "$schema": WRANGLER_SCHEMA,
        "main": WORKER_ENTRY,
        "name": project_name,
        "compatibility_date": COMPATIBILITY_DATE,
        "compatibility_flags": list(COMPATIBILITY_FLAGS),
        "assets": {
            "directory": ASSETS_DIRECTORY,
            "binding": ASSETS_BINDING,
        },
        "kv_namespaces": kv_namespaces,
    }


def render_wrangler_config(
    project_name: str,
    enable_kv_cache: bool = False,
    kv_namespace_id: str = "",
) -> str:
    """Content of ``wrangler.jsonc`` (plain JSON is valid JSONC)."""
    document = build_wrangler_config(project_name, enable_kv_cache, kv_namespace_id)
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def render_manifest(manifest: dict[str, Any]) -> str:
    """Serialize ``package.json`` with stable two-space indentation."""
    return json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"


def ignores_build_output(line: str) -> bool:
    """True if an ignore-file line already covers the build output directory.

    Matches ``.open-next`` with any leading ``/`` or ``**/`` and any trailing
    ``/``, ``/*`` or ``/**``.
    """
    pattern = line.strip()
    if not pattern or pattern.startswith(("#", "!")):
        return False
    for suffix in ("/**", "/*", "/"):
        if pattern.endswith(suffix):
            pattern = pattern[: -len(suffix)]
            break
    for prefix in ("**/", "/"):
        if pattern.startswith(prefix):
            pattern = pattern[len(prefix):]
            break
    return pattern == BUILD_OUTPUT_DIR
