import numpy as np
import pytest

from rendering.core import config
from rendering.core import transforms
from rendering.core.texture import Texture2D
from rendering.core.vertex import PositionNormalCoordinate
from rendering.renderer.material import Material, blinn_brdf, lambert_brdf, mixture

UP = np.array([0.0, 1.0, 0.0])


def surfel(normal=(0.0, 1.0, 0.0), coordinates=(0.5, 0.5)) -> PositionNormalCoordinate:
    return PositionNormalCoordinate((0.0, 0.0, 0.0), normal, coordinates)


class TestBrdf:
    def test_weights_are_normalized(self) -> None:
        material = Material(diffuse=(0.8, 0.8, 0.8), weight_diffuse=3.0)
        w_in = transforms.normalize((0.3, 1.0, 0.0))
        value = material.eval_brdf(surfel(), UP, w_in)
        assert np.allclose(value, 0.8 / np.pi)

    def test_mixed_weights_never_exceed_components(self) -> None:
        material = Material(diffuse=(1.0, 1.0, 1.0), specular=(1.0, 1.0, 1.0), weight_diffuse=0.7, weight_glossy=0.6)
        w_in = transforms.normalize((0.2, 1.0, 0.1))
        w_out = transforms.normalize((-0.2, 1.0, -0.1))
        value = material.eval_brdf(surfel(), w_out, w_in)
        diffuse = lambert_brdf((1.0, 1.0, 1.0))(UP, w_in, w_out)
        glossy = blinn_brdf((1.0, 1.0, 1.0), 16.0)(UP, w_in, w_out)
        assert np.allclose(value, diffuse * 0.7 / 1.3 + glossy * 0.6 / 1.3)
        assert np.all(value <= diffuse + glossy)

    def test_zero_weights_do_not_divide_by_zero(self) -> None:
        material = Material(weight_diffuse=0.0)
        assert material.weight_normalization == config.EPSILON
        assert np.allclose(material.eval_brdf(surfel(), UP, UP), 0.0)

    def test_glossy_peaks_at_mirror_direction(self) -> None:
        brdf = blinn_brdf((1.0, 1.0, 1.0), 32.0)
        view = transforms.normalize((1.0, 1.0, 0.0))
        mirror = transforms.reflect(-view, UP)
        off = transforms.normalize((-0.2, 1.0, 0.5))
        assert np.all(brdf(UP, mirror, view) > brdf(UP, off, view))

    def test_mixture(self) -> None:
        red = lambert_brdf((1.0, 0.0, 0.0))
        blue = lambert_brdf((0.0, 0.0, 1.0))
        assert np.allclose(mixture(red, blue, 0.25)(UP, UP, UP), np.array([0.75, 0.0, 0.25]) / np.pi)


class TestImpulses:
    def test_diffuse_material_has_none(self) -> None:
        assert Material().get_brdf_impulses(surfel(), UP) == []

    def test_black_specular_has_none(self) -> None:
        assert Material(specular=(0.0, 0.0, 0.0), weight_mirror=1.0).get_brdf_impulses(surfel(), UP) == []

    def test_mirror(self) -> None:
        material = Material(specular=(0.9, 0.9, 0.9), weight_diffuse=0.0, weight_mirror=1.0)
        w_out = transforms.normalize((1.0, 1.0, 0.0))
        impulses = material.get_brdf_impulses(surfel(), w_out)
        assert len(impulses) == 1
        assert np.allclose(impulses[0].direction, transforms.normalize((-1.0, 1.0, 0.0)))
        assert np.allclose(impulses[0].ratio, 0.9)

    def test_glass_splits_energy_at_normal_incidence(self) -> None:
        material = Material(weight_diffuse=0.0, weight_fresnel=1.0, refraction_index=1.5)
        reflection, refraction = material.get_brdf_impulses(surfel(), UP)
        assert np.allclose(reflection.direction, UP)
        assert np.allclose(refraction.direction, -UP)
        assert np.allclose(reflection.ratio, 0.04)
        assert np.allclose(refraction.ratio, 0.96)

    def test_grazing_angle_reflects_more(self) -> None:
        material = Material(weight_diffuse=0.0, weight_fresnel=1.0, refraction_index=1.5)
        straight = material.get_brdf_impulses(surfel(), UP)[0].ratio
        grazing = material.get_brdf_impulses(surfel(), transforms.normalize((1.0, 0.1, 0.0)))[0].ratio
        assert np.all(grazing > straight)

    def test_refraction_bends_towards_normal(self) -> None:
        material = Material(weight_diffuse=0.0, weight_fresnel=1.0, refraction_index=1.5)
        w_out = transforms.normalize((1.0, 1.0, 0.0))
        _, refraction = material.get_brdf_impulses(surfel(), w_out)
        # Snell: sin(theta_t) = sin(45 deg) / 1.5
        assert abs(refraction.direction[0]) == pytest.approx(np.sin(np.pi / 4.0) / 1.5)
        assert refraction.direction[1] < 0.0

    def test_total_internal_reflection(self) -> None:
        material = Material(weight_diffuse=0.0, weight_fresnel=1.0, refraction_index=1.5)
        # leaving the medium: w_out on the back side of the normal, beyond the critical angle
        w_out = transforms.normalize((1.0, -0.2, 0.0))
        impulses = material.get_brdf_impulses(surfel(), w_out)
        assert len(impulses) == 1
        assert np.allclose(impulses[0].ratio, 1.0)
        assert np.allclose(impulses[0].direction, transforms.normalize((-1.0, -0.2, 0.0)))


class TestTextures:
    def test_diffuse_map_modulates_color(self) -> None:
        texture = Texture2D(width=2, height=2)
        texture.clear((0.5, 0.25, 1.0, 1.0))
        material = Material(diffuse=(0.8, 0.8, 0.8), diffuse_map=texture)
        assert np.allclose(material.diffuse_color(surfel()), (0.4, 0.2, 0.8))

    def test_flat_bump_map_keeps_normal(self) -> None:
        bump = Texture2D(width=1, height=1)
        bump.clear((0.5, 0.5, 1.0, 1.0))
        material = Material(bump_map=bump)
        assert np.allclose(material.surface_normal(surfel()), UP)

    def test_bump_map_tilts_normal(self) -> None:
        bump = Texture2D(width=1, height=1)
        bump.clear((1.0, 0.5, 1.0, 1.0))
        normal = Material(bump_map=bump).surface_normal(surfel())
        assert np.linalg.norm(normal) == pytest.approx(1.0)
        assert normal[1] == pytest.approx(np.sqrt(0.5))
