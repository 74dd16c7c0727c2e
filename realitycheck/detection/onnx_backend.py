"""
ONNX Runtime model backend.

Wraps any exported binary image classifier (EfficientNet, ViT, ResNet, ...)
as a ModelBackend. The RGBA buffer is area-averaged down to the model's
input size, normalised, laid out as NCHW or NHWC with a batch dimension,
and the AI-class probability is read from the output tensor.

Inference is blocking, so `run` hands it to a worker thread.
"""

import asyncio
import logging
from typing import Callable, List, Optional

import numpy as np
import onnxruntime as ort
from PIL import Image

from realitycheck.config import settings
from realitycheck.detection.model_backend import calibrate

logger = logging.getLogger(__name__)

IMAGENET_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
IMAGENET_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)

LAYOUTS = ("NCHW", "NHWC")
NORMALISATIONS = ("none", "[0,1]", "imagenet")
ACTIVATIONS = ("none", "sigmoid", "softmax")


def _softmax(values: np.ndarray) -> np.ndarray:
    exps = np.exp(values - values.max())
    return exps / exps.sum()


def _sigmoid(values: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-values))


def preprocess(
    pixels: np.ndarray,
    width: int,
    height: int,
    layout: str = "NCHW",
    normalisation: str = "imagenet",
) -> np.ndarray:
    """RGBA buffer → float32 input tensor of shape (1, 3, H, W) or (1, H, W, 3)."""
    rgb = Image.fromarray(np.ascontiguousarray(pixels[..., :3], dtype=np.uint8))
    if rgb.size != (width, height):
        rgb = rgb.resize((width, height), Image.Resampling.BOX)
    tensor = np.asarray(rgb, dtype=np.float32)

    if normalisation == "[0,1]":
        tensor = tensor / 255.0
    elif normalisation == "imagenet":
        tensor = (tensor / 255.0 - IMAGENET_MEAN) / IMAGENET_STD

    if layout == "NCHW":
        tensor = tensor.transpose(2, 0, 1)
    return np.ascontiguousarray(tensor[np.newaxis], dtype=np.float32)


class OnnxModelBackend:
    """
    Runs an ONNX classifier through an `onnxruntime.InferenceSession`.

    Pass a ready `session`, or a `model_path` and one is created on the CPU
    execution provider. `input_name` defaults to the session's first input;
    `output_name` defaults to its first output.

    `activation` turns logits into probabilities before `ai_class_index` is
    read. `score_transform` is applied to the extracted value, and
    `calibrated` pulls confident outputs to the edges with `calibrate`.
    """

    def __init__(
        self,
        session=None,
        model_path: Optional[str] = None,
        input_name: Optional[str] = None,
        output_name: Optional[str] = None,
        input_width: int = 224,
        input_height: int = 224,
        layout: str = "NCHW",
        normalisation: str = "imagenet",
        ai_class_index: int = 1,
        activation: str = "none",
        score_transform: Optional[Callable[[float], float]] = None,
        calibrated: bool = False,
    ):
        if layout not in LAYOUTS:
            raise ValueError(f"Unknown input layout {layout!r}")
        if normalisation not in NORMALISATIONS:
            raise ValueError(f"Unknown normalisation {normalisation!r}")
        if activation not in ACTIVATIONS:
            raise ValueError(f"Unknown activation {activation!r}")
        if session is None:
            if not model_path:
                raise ValueError("OnnxModelBackend needs a session or a model_path")
            session = ort.InferenceSession(model_path, providers=["CPUExecutionProvider"])
            logger.info(f"[MODEL] Loaded ONNX model from {model_path}")

        self.session = session
        self.input_name = input_name or session.get_inputs()[0].name
        self.output_name = output_name
        self.input_width = input_width
        self.input_height = input_height
        self.layout = layout
        self.normalisation = normalisation
        self.ai_class_index = ai_class_index
        self.activation = activation
        self.score_transform = score_transform
        self.calibrated = calibrated

    @classmethod
    def from_settings(cls) -> "OnnxModelBackend":
        return cls(
            model_path=settings.onnx_model_path,
            input_width=settings.onnx_input_width,
            input_height=settings.onnx_input_height,
            layout=settings.onnx_layout,
            normalisation=settings.onnx_normalisation,
            ai_class_index=settings.onnx_ai_class_index,
            activation=settings.onnx_activation,
        )

    def _output_names(self) -> Optional[List[str]]:
        return [self.output_name] if self.output_name else None

    def _infer(self, pixels: np.ndarray) -> float:
        feed = preprocess(pixels, self.input_width, self.input_height, self.layout, self.normalisation)
        outputs = self.session.run(self._output_names(), {self.input_name: feed})
        if not outputs:
            raise ValueError(f"ONNX output {self.output_name or '<first>'} not found")

        values = np.asarray(outputs[0], dtype=np.float64).reshape(-1)
        if not 0 <= self.ai_class_index < values.size:
            raise ValueError(f"AI class index {self.ai_class_index} outside output of size {values.size}")

        if self.activation == "softmax":
            values = _softmax(values)
        elif self.activation == "sigmoid":
            values = _sigmoid(values)

        score = float(values[self.ai_class_index])
        if self.score_transform is not None:
            score = float(self.score_transform(score))
        if self.calibrated and np.isfinite(score):
            score = calibrate(score)
        return score

    async def run(self, pixels: np.ndarray, width: int, height: int) -> float:
        return await asyncio.to_thread(self._infer, pixels)
