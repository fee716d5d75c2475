import typing
import numpy as np
import numpy.typing as npt

from rendering.core import config
from rendering.core import transforms
from rendering.core.common_types import float3, ArrayLike3, as_float3
from rendering.core.texture import Texture2D, Sampler

type BRDF = typing.Callable[[float3, float3, float3], float3]
"""
(normal, direction to light, direction to viewer) -> reflected radiance ratio
"""

class Impulse:
    """
    Discrete scattering direction with its RGB attenuation ratio.
    """
    def __init__(self, direction: float3, ratio: float3) -> None:
        self.direction: float3 = direction
        self.ratio: float3 = ratio
        pass

    def __repr__(self) -> str:
        return f"Impulse({self.direction.tolist()}, {self.ratio.tolist()})"

class Material:
    def __init__(
        self,
        diffuse: ArrayLike3 = (1.0, 1.0, 1.0),
        specular: ArrayLike3 = (1.0, 1.0, 1.0),
        specular_power: float = 16.0,
        emissive: ArrayLike3 = (0.0, 0.0, 0.0),
        refraction_index: float = 1.0,
        weight_diffuse: float = 1.0,
        weight_glossy: float = 0.0,
        weight_mirror: float = 0.0,
        weight_fresnel: float = 0.0,
        diffuse_map: Texture2D | None = None,
        bump_map: Texture2D | None = None,
        texture_sampler: Sampler | None = None,
    ) -> None:
        self.diffuse: float3 = as_float3(diffuse)
        self.specular: float3 = as_float3(specular)
        self.specular_power: float = specular_power
        self.emissive: float3 = as_float3(emissive)
        self.refraction_index: float = refraction_index
        self.weight_diffuse: float = weight_diffuse
        self.weight_glossy: float = weight_glossy
        self.weight_mirror: float = weight_mirror
        self.weight_fresnel: float = weight_fresnel
        self.diffuse_map: Texture2D | None = diffuse_map
        self.bump_map: Texture2D | None = bump_map
        self.texture_sampler: Sampler = texture_sampler if texture_sampler is not None else Sampler()
        pass

    @property
    def weight_normalization(self) -> float:
        return max(config.EPSILON, self.weight_diffuse + self.weight_glossy + self.weight_mirror + self.weight_fresnel)

    def _coordinates(self, surfel: typing.Any) -> npt.NDArray[np.float64]:
        coordinates: npt.NDArray[np.float64] | None = getattr(surfel, "coordinates", None)
        return coordinates if coordinates is not None else np.zeros(2, dtype=np.float64)

    def surface_normal(self, surfel: typing.Any) -> float3:
        """
        Surfel normal, perturbed by the bump map when there is one.
        The bump map stores a tangent-space normal encoded in [0, 1].
        """
        normal: float3 = transforms.normalize(surfel.normal)
        if self.bump_map is None:
            return normal
        encoded: float3 = self.bump_map.sample(self.texture_sampler, self._coordinates(surfel))[:3]
        tangent_normal: float3 = encoded * 2.0 - 1.0
        tangent, bitangent = transforms.orthonormal_basis(normal)
        return transforms.normalize(tangent * tangent_normal[0] + bitangent * tangent_normal[1] + normal * tangent_normal[2])

    def diffuse_color(self, surfel: typing.Any) -> float3:
        if self.diffuse_map is None:
            return self.diffuse
        return self.diffuse * self.diffuse_map.sample(self.texture_sampler, self._coordinates(surfel))[:3]

    def emission(self, surfel: typing.Any) -> float3:
        return self.emissive

    def eval_brdf(self, surfel: typing.Any, w_out: float3, w_in: float3) -> float3:
        """
        Lambert plus normalized Blinn-Phong, each scaled by its share of the total weight.
        w_out points to the viewer, w_in to the light; both unit length and leaving the surface.
        """
        normal: float3 = self.surface_normal(surfel)
        half: float3 = transforms.normalize(w_in + w_out)
        diffuse: float3 = self.diffuse_color(surfel) / np.pi
        glossy: float3 = self.specular * max(0.0, float(np.dot(half, normal))) ** self.specular_power * (self.specular_power + 2.0) / (2.0 * np.pi)
        normalization: float = self.weight_normalization
        return diffuse * (self.weight_diffuse / normalization) + glossy * (self.weight_glossy / normalization)

    def get_brdf_impulses(self, surfel: typing.Any, w_out: float3) -> list[Impulse]:
        """
        Mirror and refraction directions for the specular part of the material.
        Schlick's approximation splits the fresnel weight between them; total internal reflection sends it all to the mirror.
        """
        if not np.any(self.specular > 0.0) or self.weight_mirror + self.weight_fresnel <= 0.0:
            return []

        normal: float3 = self.surface_normal(surfel)
        cos_out: float = float(np.dot(normal, w_out))
        entering: bool = cos_out > 0.0
        facing: float3 = normal if entering else -normal
        eta: float = 1.0 / self.refraction_index if entering else self.refraction_index

        reflected: float3 = transforms.reflect(-w_out, facing)
        reflection: float = self.weight_mirror + self.weight_fresnel
        refraction: float = 0.0
        refracted: float3 = np.zeros(3, dtype=np.float64)

        if self.weight_fresnel > 0.0:
            refracted = transforms.refract(-w_out, facing, eta)
            if np.any(refracted != 0.0):
                cos_theta: float = abs(cos_out) if entering else abs(float(np.dot(refracted, facing)))
                f0: float = ((self.refraction_index - 1.0) / (self.refraction_index + 1.0)) ** 2
                fresnel: float = f0 + (1.0 - f0) * (1.0 - cos_theta) ** 5
                reflection = self.weight_mirror + self.weight_fresnel * fresnel
                refraction = self.weight_fresnel * (1.0 - fresnel)

        normalization: float = self.weight_normalization
        impulses: list[Impulse] = [Impulse(direction=reflected, ratio=self.specular * reflection / normalization)]
        if refraction > 0.0:
            impulses.append(Impulse(direction=transforms.normalize(refracted), ratio=self.specular * refraction / normalization))
        return impulses

def lambert_brdf(diffuse: ArrayLike3) -> BRDF:
    color: float3 = as_float3(diffuse)
    return lambda normal, light, view: color / np.pi

def blinn_brdf(specular: ArrayLike3, power: float) -> BRDF:
    color: float3 = as_float3(specular)

    def evaluate(normal: float3, light: float3, view: float3) -> float3:
        half: float3 = transforms.normalize(light + view)
        return color * max(0.0, float(np.dot(half, normal))) ** power * (power + 2.0) / (2.0 * np.pi)

    return evaluate

def mixture(first: BRDF, second: BRDF, alpha: float) -> BRDF:
    return lambda normal, light, view: transforms.lerp(first(normal, light, view), second(normal, light, view), alpha)
