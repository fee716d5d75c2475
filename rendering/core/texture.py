import enum
import os
import pathlib as pl
import typing
import numpy as np
import numpy.typing as npt
os.environ.setdefault("OPENCV_IO_ENABLE_OPENEXR", "1")
import cv2 # type: ignore[import-untyped]

from rendering.core.common_types import float4, vec2f64, vec4f64, as_float4
from rendering.core.errors import TextureIOError
from rendering.core.logging_config import get_logger

logger = get_logger(__name__)

class WrapMode(enum.Enum):
    REPEAT = "repeat"
    CLAMP = "clamp"
    MIRROR = "mirror"

class FilterMode(enum.Enum):
    POINT = "point"
    LINEAR = "linear"

class Sampler:
    def __init__(self, wrap: WrapMode = WrapMode.REPEAT, filter: FilterMode = FilterMode.LINEAR) -> None:
        self.wrap: WrapMode = wrap
        self.filter: FilterMode = filter
        pass

    def resolve(self, texel: int, size: int) -> int:
        """
        Maps an integer texel coordinate, possibly out of range, into [0, size).
        """
        match self.wrap:
            case WrapMode.REPEAT:
                return texel % size
            case WrapMode.CLAMP:
                return min(max(texel, 0), size - 1)
            case WrapMode.MIRROR:
                period: int = 2 * size
                t: int = texel % period
                return t if t < size else period - 1 - t
        raise ValueError(f"Unknown wrap mode {self.wrap}")

class Texture2D:
    """
    RGBA float image in row-major (height, width, 4) layout; (0, 0) is the top-left texel.
    """
    def __init__(self, width: int, height: int, data: npt.NDArray[np.float64] | None = None) -> None:
        if width < 1 or height < 1:
            raise ValueError(f"Texture size must be positive, got {width}x{height}")
        if data is not None and data.shape != (height, width, 4):
            raise ValueError(f"Texture data of shape {data.shape} does not match {width}x{height} RGBA")
        self.data: npt.NDArray[np.float64] = data if data is not None else np.zeros((height, width, 4), dtype=np.float64)
        pass

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    def clear(self, color: vec4f64 | float4) -> None:
        self.data[:, :] = as_float4(color)

    def read(self, x: int, y: int) -> float4:
        return self.data[y, x].copy()

    def write(self, x: int, y: int, color: vec4f64 | float4 | typing.Sequence[float]) -> None:
        c: npt.NDArray[np.float64] = np.asarray(color, dtype=np.float64)
        if c.shape[0] == 3:
            c = np.append(c, 1.0)
        self.data[y, x] = c

    def sample(self, sampler: Sampler, coordinates: vec2f64 | npt.NDArray[np.float64]) -> float4:
        """
        Samples at normalized coordinates, u to the right and v down, texel centers at (i + 0.5) / size.
        """
        u: float = float(coordinates[0]) * self.width - 0.5
        v: float = float(coordinates[1]) * self.height - 0.5

        if sampler.filter == FilterMode.POINT:
            x: int = sampler.resolve(int(np.floor(u + 0.5)), self.width)
            y: int = sampler.resolve(int(np.floor(v + 0.5)), self.height)
            return self.data[y, x].copy()

        x0: int = int(np.floor(u))
        y0: int = int(np.floor(v))
        fx: float = u - x0
        fy: float = v - y0
        xa: int = sampler.resolve(x0, self.width)
        xb: int = sampler.resolve(x0 + 1, self.width)
        ya: int = sampler.resolve(y0, self.height)
        yb: int = sampler.resolve(y0 + 1, self.height)
        top: float4 = self.data[ya, xa] * (1.0 - fx) + self.data[ya, xb] * fx
        bottom: float4 = self.data[yb, xa] * (1.0 - fx) + self.data[yb, xb] * fx
        return top * (1.0 - fy) + bottom * fy

    @classmethod
    def load(cls, path: str | pl.Path, is_srgb: bool = False) -> "Texture2D":
        path = pl.Path(path)
        if not path.exists():
            logger.warning(f"Texture not found: {path}")
            raise TextureIOError(f"Texture not found: {path}")

        loaded_data = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if loaded_data is None:
            logger.warning(f"Failed to load texture: {path}")
            raise TextureIOError(f"Failed to load texture: {path}")

        logger.debug(f"path: {path} loaded_data.shape: {loaded_data.shape}")
        if len(loaded_data.shape) == 2:
            loaded_data = cv2.cvtColor(loaded_data, cv2.COLOR_GRAY2RGBA)
        elif loaded_data.shape[2] == 3:
            loaded_data = cv2.cvtColor(loaded_data, cv2.COLOR_BGR2RGBA)
        elif loaded_data.shape[2] == 4:
            loaded_data = cv2.cvtColor(loaded_data, cv2.COLOR_BGRA2RGBA)

        data_float: npt.NDArray[np.float64]
        if loaded_data.dtype == np.uint8:
            data_float = loaded_data.astype(dtype=np.float64) / 255.0
        elif loaded_data.dtype == np.uint16:
            data_float = loaded_data.astype(dtype=np.float64) / 65535.0
        else:
            data_float = loaded_data.astype(dtype=np.float64)

        if is_srgb:
            data_float[..., :3] = np.power(data_float[..., :3], 2.2)

        return cls(width=data_float.shape[1], height=data_float.shape[0], data=np.ascontiguousarray(data_float))

    def save(self, path: str | pl.Path) -> None:
        """
        Writes the texture through OpenCV. Float formats (.exr, .hdr) keep the raw values,
        anything else is clamped to [0, 1] and quantized to 8 bits.
        """
        path = pl.Path(path)
        output: npt.NDArray[typing.Any]
        if path.suffix.lower() in (".exr", ".hdr"):
            output = self.data.astype(dtype=np.float32)
        else:
            output = (np.clip(self.data, 0.0, 1.0) * 255.0 + 0.5).astype(dtype=np.uint8)
        if path.suffix.lower() in (".jpg", ".jpeg", ".hdr"):
            output = cv2.cvtColor(output, cv2.COLOR_RGBA2BGR)
        else:
            output = cv2.cvtColor(output, cv2.COLOR_RGBA2BGRA)
        if not cv2.imwrite(str(path), output):
            logger.warning(f"Failed to save texture: {path}")
            raise TextureIOError(f"Failed to save texture: {path}")
