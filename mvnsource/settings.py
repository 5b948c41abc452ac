"""Translation of the host build request into an immutable settings snapshot."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple

from .errors import DecryptionError
from .logging import get_logger
from .models import ArtifactPolicy, RawRepository
from .utils import child_bool, child_text, find_child, iter_children, nested_texts

logger = get_logger("settings")

_ENCRYPTED_VALUE = re.compile(r"^\{.*\}$", re.DOTALL)


# ----------------------------------------------------------------------
# Host execution request (as handed over by the build tool)


@dataclass
class HostRepositoryPolicy:
    enabled: bool = True


@dataclass
class HostRepository:
    id: Optional[str]
    url: str
    releases: Optional[HostRepositoryPolicy] = None
    snapshots: Optional[HostRepositoryPolicy] = None


@dataclass
class HostActivationProperty:
    name: str
    value: Optional[str] = None


@dataclass
class HostActivation:
    active_by_default: bool = False
    jdk: Optional[str] = None
    property: Optional[HostActivationProperty] = None


@dataclass
class HostProfile:
    id: str
    activation: Optional[HostActivation] = None
    repositories: Optional[List[HostRepository]] = None


@dataclass
class HostMirror:
    id: str
    url: str
    mirror_of: str


@dataclass
class HostServer:
    id: str
    username: Optional[str] = None
    password: Optional[str] = None


@dataclass
class ExecutionRequest:
    """Settings-related view of the host build invocation."""

    local_repository_path: Path = field(
        default_factory=lambda: Path.home() / ".m2" / "repository"
    )
    profiles: List[HostProfile] = field(default_factory=list)
    active_profiles: List[str] = field(default_factory=list)
    mirrors: List[HostMirror] = field(default_factory=list)
    servers: List[HostServer] = field(default_factory=list)


# ----------------------------------------------------------------------
# Settings snapshot


@dataclass(frozen=True)
class ActivationProperty:
    name: str
    value: Optional[str] = None


@dataclass(frozen=True)
class ProfileActivation:
    """Structural copy of a profile activation predicate."""

    active_by_default: bool = False
    jdk: Optional[str] = None
    property: Optional[ActivationProperty] = None

    def is_active(
        self, jdk_version: Optional[str] = None, properties: Mapping[str, str] | None = None
    ) -> bool:
        if self.active_by_default:
            return True
        if self.jdk is not None and jdk_version is not None and _jdk_matches(self.jdk, jdk_version):
            return True
        if self.property is not None and _property_matches(self.property, properties or {}):
            return True
        return False


@dataclass(frozen=True)
class SettingsProfile:
    id: str
    activation: Optional[ProfileActivation] = None
    repositories: Optional[Tuple[RawRepository, ...]] = None


@dataclass(frozen=True)
class Mirror:
    id: str
    url: str
    mirror_of: str
    releases: Optional[bool] = None
    snapshots: Optional[bool] = None


@dataclass(frozen=True)
class Server:
    id: str
    username: Optional[str]
    password: Optional[str]


@dataclass(frozen=True)
class MavenSettings:
    """Immutable settings snapshot for one run."""

    local_repository: str
    profiles: Tuple[SettingsProfile, ...] = ()
    active_profiles: Tuple[str, ...] = ()
    mirrors: Tuple[Mirror, ...] = ()
    servers: Tuple[Server, ...] = ()

    def server(self, server_id: str) -> Optional[Server]:
        for server in self.servers:
            if server.id == server_id:
                return server
        return None

    def effective_profiles(
        self, jdk_version: Optional[str] = None, properties: Mapping[str, str] | None = None
    ) -> List[SettingsProfile]:
        """Return profiles that are explicitly active or whose activation holds."""
        active = set(self.active_profiles)
        return [
            profile
            for profile in self.profiles
            if profile.id in active
            or (
                profile.activation is not None
                and profile.activation.is_active(jdk_version, properties)
            )
        ]


# ----------------------------------------------------------------------
# Decryption


class SettingsDecrypter(ABC):
    """Turns a possibly encrypted server credential into plain text."""

    @abstractmethod
    def decrypt(self, credential: str) -> str:
        """Return the plain-text credential or raise ``DecryptionError``."""


class PlainTextDecrypter(SettingsDecrypter):
    """Accepts plain-text credentials; rejects ``{...}`` encrypted values."""

    def decrypt(self, credential: str) -> str:
        if _ENCRYPTED_VALUE.match(credential.strip()):
            raise DecryptionError("Encrypted credentials require a master password")
        return credential


# ----------------------------------------------------------------------
# Translation


def build_settings(request: ExecutionRequest, decrypter: SettingsDecrypter) -> MavenSettings:
    """Map the host request into a settings snapshot, decrypting server passwords."""
    profiles = tuple(
        SettingsProfile(
            id=profile.id,
            activation=_build_activation(profile.activation),
            repositories=build_raw_repositories(profile.repositories),
        )
        for profile in request.profiles
    )
    mirrors = tuple(
        Mirror(id=mirror.id, url=mirror.url, mirror_of=mirror.mirror_of)
        for mirror in request.mirrors
    )
    servers = tuple(_decrypt_server(server, decrypter) for server in request.servers)
    return MavenSettings(
        local_repository=str(request.local_repository_path),
        profiles=profiles,
        active_profiles=tuple(request.active_profiles),
        mirrors=mirrors,
        servers=servers,
    )


def build_raw_repositories(
    repositories: Optional[Sequence[HostRepository]],
) -> Optional[Tuple[RawRepository, ...]]:
    if repositories is None:
        return None
    return tuple(
        RawRepository(
            id=repository.id,
            url=repository.url,
            releases=None
            if repository.releases is None
            else ArtifactPolicy(repository.releases.enabled),
            snapshots=None
            if repository.snapshots is None
            else ArtifactPolicy(repository.snapshots.enabled),
        )
        for repository in repositories
    )


def _build_activation(activation: Optional[HostActivation]) -> Optional[ProfileActivation]:
    if activation is None:
        return None
    prop = None
    if activation.property is not None:
        prop = ActivationProperty(activation.property.name, activation.property.value)
    return ProfileActivation(
        active_by_default=activation.active_by_default,
        jdk=activation.jdk,
        property=prop,
    )


def _decrypt_server(server: HostServer, decrypter: SettingsDecrypter) -> Server:
    password: Optional[str] = None
    if server.password is not None:
        try:
            password = decrypter.decrypt(server.password)
        except Exception as exc:
            logger.warning("Unable to decrypt password for server '%s': %s", server.id, exc)
    return Server(id=server.id, username=server.username, password=password)


# ----------------------------------------------------------------------
# Activation predicates


def _jdk_matches(expression: str, jdk_version: str) -> bool:
    expression = expression.strip()
    if expression.startswith("!"):
        return not _jdk_matches(expression[1:], jdk_version)
    if expression[:1] in "[(":
        return any(_in_range(part, jdk_version) for part in _split_ranges(expression))
    return jdk_version.startswith(expression)


def _split_ranges(expression: str) -> List[str]:
    ranges: List[str] = []
    current = ""
    for char in expression:
        current += char
        if char in "])":
            ranges.append(current.strip().lstrip(","))
            current = ""
    return [part.strip() for part in ranges if part.strip()]


def _in_range(expression: str, jdk_version: str) -> bool:
    lower_inclusive = expression.startswith("[")
    upper_inclusive = expression.endswith("]")
    bounds = expression[1:-1].split(",")
    version = _version_key(jdk_version)
    if len(bounds) == 1:
        return _version_key(bounds[0]) == version[: len(_version_key(bounds[0]))]
    lower, upper = bounds[0].strip(), bounds[1].strip()
    if lower:
        lower_key = _version_key(lower)
        if version < lower_key or (version == lower_key and not lower_inclusive):
            return False
    if upper:
        upper_key = _version_key(upper)
        truncated = version[: len(upper_key)]
        if truncated > upper_key or (truncated == upper_key and not upper_inclusive):
            return False
    return True


def _version_key(version: str) -> Tuple[int, ...]:
    parts: List[int] = []
    for piece in re.split(r"[._\-+]", version.strip()):
        if not piece.isdigit():
            break
        parts.append(int(piece))
    return tuple(parts)


def _property_matches(prop: ActivationProperty, properties: Mapping[str, str]) -> bool:
    name = prop.name
    if name.startswith("!"):
        return name[1:] not in properties
    if name not in properties:
        return False
    if prop.value is None:
        return True
    actual = properties[name]
    if prop.value.startswith("!"):
        return actual != prop.value[1:]
    return actual == prop.value


# ----------------------------------------------------------------------
# settings.xml loading


def load_execution_request(settings_xml: Path | None = None) -> ExecutionRequest:
    """Read a ``settings.xml`` into an execution request; missing files yield defaults."""
    path = settings_xml or Path.home() / ".m2" / "settings.xml"
    request = ExecutionRequest()
    if not path.exists():
        return request
    root = ET.fromstring(path.read_text(encoding="utf-8"))

    local_repository = child_text(root, "localRepository")
    if local_repository:
        request.local_repository_path = Path(local_repository).expanduser()

    for element in iter_children(find_child(root, "profiles"), "profile"):
        request.profiles.append(_read_profile(element))

    request.active_profiles = nested_texts(root, "activeProfiles", "activeProfile")

    for element in iter_children(find_child(root, "mirrors"), "mirror"):
        request.mirrors.append(
            HostMirror(
                id=child_text(element, "id") or "",
                url=child_text(element, "url") or "",
                mirror_of=child_text(element, "mirrorOf") or "",
            )
        )

    for element in iter_children(find_child(root, "servers"), "server"):
        request.servers.append(
            HostServer(
                id=child_text(element, "id") or "",
                username=child_text(element, "username"),
                password=child_text(element, "password"),
            )
        )
    return request


def _read_profile(element: ET.Element) -> HostProfile:
    activation = None
    activation_element = find_child(element, "activation")
    if activation_element is not None:
        prop = None
        property_element = find_child(activation_element, "property")
        if property_element is not None:
            prop = HostActivationProperty(
                name=child_text(property_element, "name") or "",
                value=child_text(property_element, "value"),
            )
        activation = HostActivation(
            active_by_default=bool(child_bool(activation_element, "activeByDefault")),
            jdk=child_text(activation_element, "jdk"),
            property=prop,
        )

    repositories = None
    repositories_element = find_child(element, "repositories")
    if repositories_element is not None:
        repositories = [read_host_repository(item) for item in iter_children(repositories_element, "repository")]

    return HostProfile(
        id=child_text(element, "id") or "",
        activation=activation,
        repositories=repositories,
    )


def read_host_repository(element: ET.Element) -> HostRepository:
    def _policy(name: str) -> Optional[HostRepositoryPolicy]:
        policy = find_child(element, name)
        if policy is None:
            return None
        enabled = child_bool(policy, "enabled")
        return HostRepositoryPolicy(enabled=True if enabled is None else enabled)

    return HostRepository(
        id=child_text(element, "id"),
        url=child_text(element, "url") or "",
        releases=_policy("releases"),
        snapshots=_policy("snapshots"),
    )


__all__ = [
    "ActivationProperty",
    "ExecutionRequest",
    "HostActivation",
    "HostActivationProperty",
    "HostMirror",
    "HostProfile",
    "HostRepository",
    "HostRepositoryPolicy",
    "HostServer",
    "MavenSettings",
    "Mirror",
    "PlainTextDecrypter",
    "ProfileActivation",
    "Server",
    "SettingsDecrypter",
    "SettingsProfile",
    "build_raw_repositories",
    "build_settings",
    "load_execution_request",
    "read_host_repository",
]
