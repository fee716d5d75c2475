import typing
import numpy as np

from rendering.core.common_types import float3, float4x4, vec2f64, ArrayLike3, as_float3
from rendering.core import transforms

@typing.runtime_checkable
class Vertex(typing.Protocol):
    """
    Minimal contract for anything stored in a Mesh.
    add and scale must be linear so meshes can interpolate, weld and blend vertices without knowing their fields.
    """
    position: float3

    def add(self, other: typing.Self) -> typing.Self: ...

    def scale(self, factor: float) -> typing.Self: ...

    @classmethod
    def from_position(cls, position: ArrayLike3, coordinates: vec2f64 = (0.0, 0.0)) -> typing.Self: ...

@typing.runtime_checkable
class NormalVertex(Vertex, typing.Protocol):
    normal: float3

@typing.runtime_checkable
class TransformableAttribute(typing.Protocol):
    def transform(self, matrix: float4x4) -> typing.Self: ...

class Position:
    def __init__(self, position: ArrayLike3) -> None:
        self.position: float3 = as_float3(position)
        pass

    @classmethod
    def from_position(cls, position: ArrayLike3, coordinates: vec2f64 = (0.0, 0.0)) -> "Position":
        return cls(position=position)

    def add(self, other: "Position") -> "Position":
        return Position(position=self.position + other.position)

    def scale(self, factor: float) -> "Position":
        return Position(position=self.position * factor)

    def transform(self, matrix: float4x4) -> "Position":
        return Position(position=transforms.transform_point(self.position, matrix))

    def __repr__(self) -> str:
        return f"Position({self.position.tolist()})"

class PositionNormal:
    def __init__(self, position: ArrayLike3, normal: ArrayLike3 = (0.0, 0.0, 0.0)) -> None:
        self.position: float3 = as_float3(position)
        self.normal: float3 = as_float3(normal)
        pass

    @classmethod
    def from_position(cls, position: ArrayLike3, coordinates: vec2f64 = (0.0, 0.0)) -> "PositionNormal":
        return cls(position=position)

    def add(self, other: "PositionNormal") -> "PositionNormal":
        return PositionNormal(
            position=self.position + other.position,
            normal=self.normal + other.normal,
        )

    def scale(self, factor: float) -> "PositionNormal":
        return PositionNormal(
            position=self.position * factor,
            normal=self.normal * factor,
        )

    def transform(self, matrix: float4x4) -> "PositionNormal":
        # Normals go through the inverse transpose so non-uniform scales keep them perpendicular.
        return PositionNormal(
            position=transforms.transform_point(self.position, matrix),
            normal=transforms.normalize(transforms.transform_normal(self.normal, matrix)),
        )

    def __repr__(self) -> str:
        return f"PositionNormal({self.position.tolist()}, {self.normal.tolist()})"

class PositionNormalCoordinate:
    """
    Surfel: position, normal and texture coordinates of a surface sample.
    """
    def __init__(self, position: ArrayLike3, normal: ArrayLike3 = (0.0, 0.0, 0.0), coordinates: vec2f64 | typing.Sequence[float] = (0.0, 0.0)) -> None:
        self.position: float3 = as_float3(position)
        self.normal: float3 = as_float3(normal)
        self.coordinates: np.ndarray = np.asarray(coordinates, dtype=np.float64).reshape(2)
        pass

    @classmethod
    def from_position(cls, position: ArrayLike3, coordinates: vec2f64 = (0.0, 0.0)) -> "PositionNormalCoordinate":
        return cls(position=position, coordinates=coordinates)

    def add(self, other: "PositionNormalCoordinate") -> "PositionNormalCoordinate":
        return PositionNormalCoordinate(
            position=self.position + other.position,
            normal=self.normal + other.normal,
            coordinates=self.coordinates + other.coordinates,
        )

    def scale(self, factor: float) -> "PositionNormalCoordinate":
        return PositionNormalCoordinate(
            position=self.position * factor,
            normal=self.normal * factor,
            coordinates=self.coordinates * factor,
        )

    def transform(self, matrix: float4x4) -> "PositionNormalCoordinate":
        return PositionNormalCoordinate(
            position=transforms.transform_point(self.position, matrix),
            normal=transforms.normalize(transforms.transform_normal(self.normal, matrix)),
            coordinates=self.coordinates.copy(),
        )

    def __repr__(self) -> str:
        return f"PositionNormalCoordinate({self.position.tolist()}, {self.normal.tolist()}, {self.coordinates.tolist()})"

def interpolated_fields(vertex: Vertex) -> np.ndarray:
    """
    Flattens every numeric field of a vertex into one row, position first.
    Two vertices describe the same surface sample only when these rows agree.
    """
    fields: list[np.ndarray] = [as_float3(vertex.position)]
    for name, value in vars(vertex).items():
        if name == "position" or not isinstance(value, (np.ndarray, float, int)):
            continue
        fields.append(np.asarray(value, dtype=np.float64).reshape(-1))
    return np.concatenate(fields)

def blend[V: Vertex](vertices: typing.Sequence[V], weights: typing.Sequence[float]) -> V:
    """
    Weighted sum of vertices using only add/scale.
    """
    result: V = vertices[0].scale(weights[0])
    for vertex, weight in zip(vertices[1:], weights[1:]):
        result = result.add(vertex.scale(weight))
    return result
