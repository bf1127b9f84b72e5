"""
Chart archive handling for the asset gateway.

Reads chart metadata out of a pulled chart tarball without unpacking it to disk.
"""

import io
import logging
import tarfile
from dataclasses import dataclass

import yaml

from .errors import PullFailed

logger = logging.getLogger(__name__)

HELM_CHART_CONTENT_MEDIA_TYPE = "application/vnd.cncf.helm.chart.content.v1.tar+gzip"


@dataclass(frozen=True)
class ChartMetadata:
    name: str
    version: str


def _find_chart_yaml(tar: tarfile.TarFile) -> tarfile.TarInfo:
    # Subcharts live under <chart>/charts/..., only the top-level one counts
    for member in tar.getmembers():
        parts = member.name.strip("/").split("/")
        if member.isfile() and len(parts) == 2 and parts[1] == "Chart.yaml":
            return member
    raise PullFailed("chart archive has no top-level Chart.yaml")


def load_chart_metadata(data: bytes) -> ChartMetadata:
    """
    Load name and version from a chart archive.

    Args:
        data: The gzip'd chart tarball as pulled from the registry

    Returns:
        ChartMetadata with the chart's name and version

    Raises:
        PullFailed: archive unreadable, Chart.yaml missing or incomplete

    Example:
        >>> meta = load_chart_metadata(chart_bytes)
        >>> f"{meta.name}-{meta.version}.tgz"
        'nginx-1.2.3.tgz'
    """
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
            member = _find_chart_yaml(tar)
            logger.debug(f"Reading chart metadata from {member.name}")
            chart = yaml.safe_load(tar.extractfile(member))
    except (tarfile.TarError, OSError) as e:
        raise PullFailed(f"unreadable chart archive: {e}") from e
    except yaml.YAMLError as e:
        raise PullFailed(f"invalid Chart.yaml: {e}") from e

    if not isinstance(chart, dict) or not chart.get("name") or not chart.get("version"):
        raise PullFailed("Chart.yaml is missing name or version")

    return ChartMetadata(name=str(chart["name"]), version=str(chart["version"]))
