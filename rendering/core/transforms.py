import numpy as np
import numpy.typing as npt
import pyrr as rr # type: ignore[import-untyped]

from rendering.core.common_types import float3, float4, float4x4, ArrayLike3, as_float3

# All matrices follow pyrr's row-vector convention: a point p is transformed as [p, 1] @ M,
# so mul(A, B) applies A first and then B.

def identity() -> float4x4:
    return rr.matrix44.create_identity(dtype=np.float64)

def translate(x: float, y: float, z: float) -> float4x4:
    return rr.matrix44.create_from_translation(np.array([x, y, z], dtype=np.float64), dtype=np.float64)

def scale(x: float, y: float, z: float) -> float4x4:
    return rr.matrix44.create_from_scale(np.array([x, y, z], dtype=np.float64), dtype=np.float64)

def rotate_x(angle: float) -> float4x4:
    return rr.matrix44.create_from_x_rotation(angle, dtype=np.float64)

def rotate_y(angle: float) -> float4x4:
    return rr.matrix44.create_from_y_rotation(angle, dtype=np.float64)

def rotate_z(angle: float) -> float4x4:
    return rr.matrix44.create_from_z_rotation(angle, dtype=np.float64)

def rotate_axis(axis: ArrayLike3, angle: float) -> float4x4:
    """
    Right-handed rotation of `angle` radians around `axis`.
    """
    return rr.matrix44.create_from_axis_rotation(normalize(axis), angle, dtype=np.float64)

def rotate_respect_to(center: ArrayLike3, axis: ArrayLike3, angle: float) -> float4x4:
    """
    Rotation around the line through `center` with direction `axis`.
    """
    c: float3 = as_float3(center)
    return mul(translate(-c[0], -c[1], -c[2]), rotate_axis(axis, angle), translate(c[0], c[1], c[2]))

def look_at(eye: ArrayLike3, target: ArrayLike3, up: ArrayLike3) -> float4x4:
    return rr.matrix44.create_look_at(
        eye=as_float3(eye),
        target=as_float3(target),
        up=as_float3(up),
        dtype=np.float64,
    )

def perspective(fov: float, aspect: float, near: float, far: float) -> float4x4:
    """
    fov is the vertical field of view in radians, aspect is width / height.
    """
    return rr.matrix44.create_perspective_projection(
        fovy=np.degrees(fov),
        aspect=aspect,
        near=near,
        far=far,
        dtype=np.float64,
    )

def mul(*matrices: float4x4) -> float4x4:
    result: float4x4 = identity()
    for matrix in matrices:
        result = result @ np.asarray(matrix, dtype=np.float64)
    return result

def inverse(matrix: float4x4) -> float4x4:
    return rr.matrix44.inverse(np.asarray(matrix, dtype=np.float64))

def normal_matrix(matrix: float4x4) -> npt.NDArray[np.float64]:
    """
    Inverse transpose of the linear part, for transforming normals under non-uniform scale.
    Falls back to the identity for singular matrices.
    """
    m33: npt.NDArray[np.float64] = np.asarray(matrix, dtype=np.float64)[:3, :3]
    try:
        return np.linalg.inv(m33).T
    except np.linalg.LinAlgError:
        return np.eye(3, dtype=np.float64)

def transform_point(point: ArrayLike3, matrix: float4x4) -> float3:
    h: float4 = np.append(as_float3(point), 1.0) @ matrix
    if abs(h[3]) < 1e-12:
        return h[:3]
    return h[:3] / h[3]

def transform_direction(direction: ArrayLike3, matrix: float4x4) -> float3:
    return as_float3(direction) @ np.asarray(matrix, dtype=np.float64)[:3, :3]

def transform_normal(normal: ArrayLike3, matrix: float4x4) -> float3:
    return as_float3(normal) @ normal_matrix(matrix)

def transform_points(points: npt.NDArray[np.float64], matrix: float4x4) -> npt.NDArray[np.float64]:
    """
    points: (N, 3) array. Returns the (N, 3) array of transformed, w-divided points.
    """
    ones: npt.NDArray[np.float64] = np.ones((len(points), 1), dtype=np.float64)
    h: npt.NDArray[np.float64] = np.hstack([points, ones]) @ matrix
    w: npt.NDArray[np.float64] = h[:, 3:4]
    w = np.where(np.abs(w) < 1e-12, 1.0, w)
    return h[:, :3] / w

def normalize(vector: ArrayLike3) -> float3:
    v: float3 = as_float3(vector)
    length: float = float(np.linalg.norm(v))
    if length < 1e-12:
        return np.zeros(3, dtype=np.float64)
    return v / length

def lerp(a: npt.NDArray[np.float64], b: npt.NDArray[np.float64], t: float) -> npt.NDArray[np.float64]:
    return a + (b - a) * t

def reflect(incident: float3, normal: float3) -> float3:
    return incident - 2.0 * float(np.dot(normal, incident)) * normal

def refract(incident: float3, normal: float3, eta: float) -> float3:
    """
    GLSL refract: `incident` and `normal` are unit vectors facing each other.
    Returns the zero vector on total internal reflection.
    """
    cos_i: float = float(np.dot(normal, incident))
    k: float = 1.0 - eta * eta * (1.0 - cos_i * cos_i)
    if k < 0.0:
        return np.zeros(3, dtype=np.float64)
    return eta * incident - (eta * cos_i + np.sqrt(k)) * normal

def orthonormal_basis(normal: float3) -> tuple[float3, float3]:
    """
    Two unit vectors (tangent, bitangent) completing `normal` to a right-handed frame.
    """
    helper: float3 = np.array([0.0, 1.0, 0.0]) if abs(normal[1]) < 0.999 else np.array([1.0, 0.0, 0.0])
    tangent: float3 = normalize(rr.vector3.cross(helper, normal))
    bitangent: float3 = rr.vector3.cross(normal, tangent)
    return tangent, bitangent
