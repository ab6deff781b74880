"""DSPy-powered content-safety review for billboard media."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import dspy
from ffmpeg import FFmpeg

from stoya.config.models import LLMSettings
from stoya.media.models import MediaFile

from .models import SafetyVerdict

LOGGER = logging.getLogger(__name__)

MODERATION_PROMPT = (
    "You are a content moderator for a public digital billboard company. "
    "Analyze the provided image or video frame and determine whether it is safe "
    "for general public display (all ages). Strictly prohibited: nudity or sexual "
    "content, excessive violence or gore, hate symbols or hate speech, illegal drugs. "
    "Return safe (boolean) and reason (short explanation)."
)


class SafetyClassifier(Protocol):
    """Anything able to review media for public display."""

    def classify(self, media: MediaFile) -> SafetyVerdict:
        """Return the verdict for ``media``; must not raise."""
        ...


class DSPySafetyClassifier:
    """Review images and video frames with a multimodal DSPy program.

    Every failure, from model configuration to malformed output, produces an
    unsafe verdict so nothing reaches the moderation folder unreviewed.

    The model sees a single image. Videos are reviewed from their first frame
    only, extracted with ffmpeg; later frames and the audio track are never
    sent, so a clip that turns unsafe after its opening frame passes review.
    """

    def __init__(self, settings: Optional[LLMSettings] = None) -> None:
        """Initialise the classifier with the configured LLM settings.

        Args:
            settings: LLM configuration section.
        """
        self._settings = settings or LLMSettings()
        self._program: Optional[dspy.Predict] = None

    def classify(self, media: MediaFile) -> SafetyVerdict:
        """Return the safety verdict for ``media``.

        Args:
            media: Locally validated image or video.

        Returns:
            SafetyVerdict: Model verdict, or an unsafe verdict on any failure.
        """
        try:
            program = self._ensure_program()
            with tempfile.TemporaryDirectory(prefix="stoya-") as scratch:
                image = self._load_image(self._frame_for(media, Path(scratch)))
                response = program(image=image, instructions=MODERATION_PROMPT)
        except Exception as exc:
            LOGGER.error("Safety analysis failed for %s: %s", media.name, exc)
            return SafetyVerdict.failed()

        safe = getattr(response, "safe", None)
        reason = getattr(response, "reason", None)
        if not isinstance(safe, bool):
            LOGGER.warning("Safety analysis for %s returned no verdict.", media.name)
            return SafetyVerdict.failed()
        reason_text = reason.strip() if isinstance(reason, str) and reason.strip() else "No reason given."
        LOGGER.info("Safety verdict for %s: safe=%s (%s)", media.name, safe, reason_text)
        return SafetyVerdict(safe=safe, reason=reason_text)

    def _ensure_program(self) -> dspy.Predict:
        if self._program is None:
            self._configure_language_model()
            self._program = self._build_program()
        return self._program

    def _configure_language_model(self) -> None:
        """Configure the DSPy language model according to LLM settings."""
        if not self._settings.api_key and not self._settings.api_base_url:
            raise RuntimeError(
                "Safety review requires `llm.api_key` or `llm.api_base_url` to be configured."
            )

        lm_kwargs: dict[str, object] = {
            "model": self.model_name(),
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
        }
        if self._settings.api_base_url:
            lm_kwargs["api_base"] = self._settings.api_base_url
        if self._settings.api_key is not None:
            lm_kwargs["api_key"] = self._settings.api_key

        dspy.settings.configure(lm=dspy.LM(**lm_kwargs))

    def model_name(self) -> str:
        """Return the LiteLLM model id, prefixed with ``llm.provider`` when bare.

        ``model: gemini-2.5-flash`` with ``provider: gemini`` becomes
        ``gemini/gemini-2.5-flash``; ids that already carry a provider, and the
        ``local`` provider, are used as given.
        """
        model = self._settings.model
        provider = self._settings.provider
        if provider and provider != "local" and "/" not in model:
            return f"{provider}/{model}"
        return model

    @staticmethod
    def _build_program() -> dspy.Predict:
        """Construct the DSPy program used for safety review."""

        class MediaSafetySignature(dspy.Signature):  # type: ignore[misc]
            """Decide whether media is safe for a public all-ages billboard."""

            image: dspy.Image = dspy.InputField()
            instructions: str = dspy.InputField()
            safe: bool = dspy.OutputField()
            reason: str = dspy.OutputField()

        return dspy.Predict(MediaSafetySignature)

    @staticmethod
    def _frame_for(media: MediaFile, scratch: Path) -> Path:
        """Return an image path for ``media``; videos yield their first frame."""
        if media.kind == "image":
            return media.path
        frame = scratch / "frame.jpg"
        FFmpeg().option("y").input(str(media.path)).output(str(frame), {"frames:v": 1}).execute()
        return frame

    @staticmethod
    def _load_image(path: Path):
        """Return a DSPy image payload for the supplied path."""
        if hasattr(dspy.Image, "from_file"):
            return dspy.Image.from_file(str(path))
        if hasattr(dspy.Image, "from_path"):
            return dspy.Image.from_path(str(path))
        raise RuntimeError("Unable to construct a DSPy image payload from the provided path.")


__all__ = ["SafetyClassifier", "DSPySafetyClassifier", "MODERATION_PROMPT"]
