from __future__ import annotations

_LOCAL_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:3001",
)


def build_allowed_origins(*, frontend_base_url: str | None, frontend_urls: str | None) -> list[str]:
    allowed: set[str] = set(_LOCAL_ORIGINS)
    if frontend_base_url:
        allowed.add(str(frontend_base_url).strip().rstrip("/"))
    for origin in str(frontend_urls or "").split(","):
        origin = origin.strip().rstrip("/")
        if origin:
            allowed.add(origin)
    return sorted(allowed)
