"""Redirect rewriting: node name translation, scheme handling and body substitution.

Everything in this module is pure and safe to call from concurrent requests.
"""

import re
from urllib.parse import SplitResult, urlsplit, urlunsplit

from redirect_gateway.rewriter_service.errors import InvalidLocationError, NoMatchFoundError
from redirect_gateway.shared.config import RewriteRule

# Clients cannot follow a redirect that names a websocket scheme.
SCHEME_REPLACEMENTS = {
    "ws": "http",
    "wss": "https",
}

# Greedy within one line: from the first quote to the last quote on it.
QUOTED_STRING = re.compile(rb'"(.*)"')


def translate_hostname(host: str, internal_pattern: str, external_replacement: str) -> str:
    """
    Translate an internal node name into its external form.

    Every occurrence of ``internal_pattern`` in ``host`` is replaced.

    Raises:
        NoMatchFoundError: If ``internal_pattern`` does not occur in ``host``
    """
    if internal_pattern not in host:
        raise NoMatchFoundError(host, internal_pattern)
    return host.replace(internal_pattern, external_replacement)


def build_external_host(translated_name: str, domain: str) -> str:
    """Join a translated node name and the public domain."""
    return f"{translated_name}.{domain}"


def capture_scheme(target_scheme: str, forwarded_proto: str) -> str:
    """Scheme of the request target, or the X-Forwarded-Proto value when it has none."""
    return target_scheme or forwarded_proto


def normalize_scheme(scheme: str) -> str:
    """Map ws(s) onto http(s); any other scheme is returned unchanged."""
    return SCHEME_REPLACEMENTS.get(scheme, scheme)


def split_hostname(netloc: str) -> str:
    """Host of a network location as sent: userinfo, port and IPv6 brackets removed, case kept."""
    hostport = netloc.rpartition("@")[2]
    if hostport.startswith("["):
        return hostport[1:].partition("]")[0]
    return hostport.partition(":")[0]


def rewrite_location(location: str, rule: RewriteRule, request_scheme: str) -> str:
    """
    Point a resolver redirect at the public name of its target node.

    The scheme becomes the rule's fixed scheme when one is configured, the
    normalized scheme of the original request otherwise. Host and port are
    replaced by ``{translated name}.{domain}``; path, query and fragment are kept.

    Raises:
        InvalidLocationError: If ``location`` cannot be parsed or has no host
        NoMatchFoundError: If the host does not contain the internal pattern
    """
    try:
        parsed: SplitResult = urlsplit(location)
        if not parsed.hostname:
            raise InvalidLocationError(f"Location [{location}] has no host")
    except ValueError as exc:
        raise InvalidLocationError(f"Cannot parse Location [{location}]: {exc}") from exc

    # SplitResult.hostname is lowercased; the pattern is matched against the host as sent.
    hostname = split_hostname(parsed.netloc)
    external_name = translate_hostname(hostname, rule.internal_pattern, rule.external_replacement)
    netloc = build_external_host(external_name, rule.domain)
    if parsed.username is not None:
        userinfo = parsed.netloc.rpartition("@")[0]
        netloc = f"{userinfo}@{netloc}"

    scheme = rule.fixed_scheme or request_scheme
    return urlunsplit((scheme, netloc, parsed.path, parsed.query, parsed.fragment))


def rewrite_first_quoted(body: bytes, replacement: str) -> bytes:
    """
    Replace the first quoted string of a resolver redirect body.

    The resolver answers with a single anchor such as
    ``<a href="http://node:6200/api/v2/device">Temporary Redirect</a>.``;
    only that first quoted run is substituted.
    """
    quoted = b'"' + replacement.encode("utf-8") + b'"'
    return QUOTED_STRING.sub(lambda _match: quoted, body, count=1)
