"""HTTP implementation of the ArtifactFetcher port."""

import contextlib
import logging
from pathlib import Path
from typing import Generator, Iterator, Tuple

import httpx
import yaml
from pydantic import ValidationError
from tqdm import tqdm

from ..application.domain import ArtifactFetcher, ConfigurationDocument
from ..application.exceptions import FetchError

from .config_models import EXPECTED_SECTIONS, CollectorConfigOutline


class HttpDownloader(ArtifactFetcher):
    """A downloader that fetches files via HTTP atomically."""

    def __init__(
        self,
        client: httpx.Client,
        timeout: int,
        chunk_size: int,
        show_progress: bool = True,
    ):
        """Initializes the downloader adapter."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.client = client
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.show_progress = show_progress

    @contextlib.contextmanager
    def _atomic_target(self, destination: Path) -> Generator[Path, None, None]:
        """Provides a temporary '.part' path and ensures cleanup."""
        part_path = destination.with_suffix(destination.suffix + ".part")
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            yield part_path
        finally:
            part_path.unlink(missing_ok=True)

    def _stream_chunks(
        self, response: httpx.Response, target_file: Path,
    ) -> Iterator[int]:
        """Produce byte chunks from a response and write them to a file."""
        with open(target_file, "wb") as f:
            for chunk in response.iter_bytes(self.chunk_size):
                f.write(chunk)
                yield len(chunk)

    def _consume_stream_with_progress(
        self, stream: Iterator[int], total_size: int, desc: str,
    ) -> int:
        """Consume the byte stream to update a TQDM progress bar.

        Returns:
            The number of bytes written to the target file.
        """

        received = 0
        with tqdm(
            total=total_size or None,
            unit="B",
            unit_scale=True,
            desc=desc,
            disable=not self.show_progress,
            leave=False,
        ) as progress_bar:
            for progress in stream:
                received += progress
                progress_bar.update(progress)
        return received

    def _stream_from_network(self, url: str, target_file: Path):
        """Manage the network request and the streaming process."""
        with self.client.stream(
            "GET", url, timeout=self.timeout, follow_redirects=True
        ) as response:
            if response.status_code != 200:
                raise FetchError(
                    f"Download failed with HTTP status {response.status_code}: {url}",
                    status=response.status_code,
                )
            total_size = int(response.headers.get("Content-Length", 0) or 0)
            stream = self._stream_chunks(response, target_file)
            received = self._consume_stream_with_progress(
                stream, total_size, target_file.name
            )

            # Content-Length counts encoded bytes; only identity bodies compare.
            encoding = response.headers.get("Content-Encoding", "identity").lower()
            if total_size != 0 and encoding == "identity" and received != total_size:
                raise FetchError(
                    f"Size mismatch: {received} != {total_size}", status=200
                )

    def fetch(self, url: str, destination: Path) -> Path:
        """
        Download a file, replacing whatever is at the destination.

        This is the public method that fulfills the ArtifactFetcher port
        contract. The body is streamed into a '.part' file that is only
        renamed once the transfer completed with status 200, so a failed
        download never leaves a file at the destination. There is no retry.

        Args:
            url: The URL to GET; redirects are followed.
            destination: The final path for the file.

        Returns:
            The destination path.

        Raises:
            FetchError: For any status other than 200, a transport failure,
                a short body or a local filesystem error.
        """

        self.logger.info(f"Downloading {url}")
        try:
            with self._atomic_target(destination) as part_path:
                self._stream_from_network(url, part_path)
                part_path.replace(destination)
        except httpx.HTTPError as e:
            raise FetchError(f"Download failed: {url}: {e}") from e
        except OSError as e:
            raise FetchError(f"Failed to write {destination}: {e}") from e
        self.logger.info(f"Finished downloading {destination.name}")
        return destination

    def _inspect(self, path: Path) -> Tuple[int, Tuple[str, ...]]:
        """Returns the size and the pipeline sections of a config document."""
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise FetchError(f"Failed to read {path}: {e}") from e
        if not raw.strip():
            return len(raw), ()
        try:
            data = yaml.safe_load(raw)
            outline = CollectorConfigOutline.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            self.logger.debug(f"Config outline check failed: {e}")
            return len(raw), ()
        return len(raw), outline.sections_found()

    def fetch_config(self, url: str, destination: Path) -> ConfigurationDocument:
        """
        Download a collector configuration and check it loosely.

        An empty document, or one without any of the receivers, processors
        or exporters sections, is logged as a warning but still returned: the
        check is a sanity hint, not a gate.

        Raises:
            FetchError: Under the same rules as fetch().
        """

        self.fetch(url, destination)
        size, sections = self._inspect(destination)
        document = ConfigurationDocument(
            path=destination, size_bytes=size, sections_found=sections
        )

        if document.is_empty:
            self.logger.warning(f"Downloaded config file is empty: {url}")
        elif not document.sections_found:
            self.logger.warning(
                "Downloaded file may not be a valid OTEL config "
                f"(none of {', '.join(EXPECTED_SECTIONS)} found)"
            )
        return document
