"""AudioPlayer: decodes an audio file with librosa and plays it via sounddevice."""

import logging

import librosa
import numpy as np
import sounddevice as sd

logger = logging.getLogger(__name__)


class AudioPlayer:
    """
    Fire-and-forget audio output for the playback loop.

    ``start()`` returns as soon as the samples are queued; the player never
    reports its position back. Used as a context manager, playback is
    stopped on exit whatever the reason:

        with AudioPlayer() as audio:
            audio.prepare("song.ogg")   # decode up front
            audio.start("song.ogg")     # returns immediately
            ...
    """

    def __init__(self, sample_rate: int | None = None) -> None:
        """
        Args:
            sample_rate: Resample to this rate; None keeps the file's rate.
        """
        self.sample_rate = sample_rate
        self._decoded: dict[str, tuple[np.ndarray, int]] = {}
        self._playing = False

    def load(self, path: str) -> tuple[np.ndarray, int]:
        """
        Decode an audio file.

        Args:
            path: Any librosa-compatible audio file.

        Returns:
            A 2-tuple:
              - samples (np.ndarray): float32, shape (n_frames, n_channels).
              - sample_rate (int): rate of the returned samples in Hz.
        """
        y, sr = librosa.load(path, sr=self.sample_rate, mono=False)
        # librosa is channel-first; sounddevice wants frames first
        samples = np.atleast_2d(y).T.astype(np.float32)
        return samples, int(sr)

    def prepare(self, path: str) -> None:
        """
        Decode *path* ahead of playback so that ``start()`` only has to
        queue the samples.

        Raises:
            OSError: If the file cannot be read.
        """
        if path not in self._decoded:
            self._decoded[path] = self.load(path)

    def start(self, path: str) -> "AudioPlayer":
        """
        Start playing *path* without blocking.

        The file is decoded here if ``prepare()`` was not called first,
        which delays the return by the decode time.
        """
        self.prepare(path)
        samples, sr = self._decoded[path]
        logger.debug("Playing %s (%d frames @ %d Hz)", path, samples.shape[0], sr)
        sd.play(samples, samplerate=sr)
        self._playing = True
        return self

    def stop(self) -> None:
        """Stop playback if it is running."""
        if self._playing:
            sd.stop()
            self._playing = False

    def __enter__(self) -> "AudioPlayer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
