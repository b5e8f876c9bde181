from __future__ import annotations

from app.adminpanel.modules.settings.service import ConfigStore

# stored theme flag -> (group, key, title)
_FLAGS = (
    ("render_compile_check", "render", "compile_check", "Compile check"),
    ("render_force_compile", "render", "force_compile", "Force compile"),
    ("render_cache", "render", "cache", "Caching"),
    ("compile_check", "theme", "compile_check", "Compile check"),
    ("force_compile", "theme", "force_compile", "Force compile"),
    ("enablecache", "theme", "cache", "Caching"),
)


def developer_notices(dev_mode: bool, theme: ConfigStore) -> dict:
    """Rendering/caching flags worth flagging while running in development mode."""
    data: dict = {"devmode": bool(dev_mode)}
    if not dev_mode:
        return data

    data["cssjscombine"] = theme.get("cssjscombine", False)
    for stored, group, key, title in _FLAGS:
        state = theme.get(stored)
        if state:
            data.setdefault(group, {})[key] = {"state": state, "title": title}
    return data
