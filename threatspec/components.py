"""Component reference parsing and identity keys."""

import re

_NON_KEY_CHARS = re.compile(r'[^a-z0-9]')


def normalize(text: str) -> str:
    """Lowercase and strip every character outside [a-z0-9]."""
    return _NON_KEY_CHARS.sub('', text.lower())


def component_key(zone: str, component: str) -> str:
    """Stable identity for a (zone, component) pair, e.g. 'web-api'."""
    return normalize(zone) + '-' + normalize(component)


def parse_component(reference: str) -> tuple[str, str]:
    """
    Split a raw component reference into (component, zone).

    'Zone:Name' splits at the first colon; a reference without a colon
    uses the same string for both component and zone.
    """
    zone, sep, name = reference.partition(':')
    if sep and zone.strip() and name.strip():
        return name.strip(), zone.strip()
    return reference.strip(), reference.strip()
