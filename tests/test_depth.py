import unittest

import numpy as np

from src_parallax.data_types import DepthField
from src_parallax.depth import CallableSegmentationProvider, DepthSynthesizer, NullSegmentationProvider
from src_parallax.errors import DecodeError, ParallaxError
from src_parallax.settings import DepthSettings
from tests.fixtures import gradient_image


def centred_square_mask(width: int, height: int) -> np.ndarray:
    mask = np.zeros((height, width), dtype=np.float32)
    mask[height // 4: 3 * height // 4, width // 4: 3 * width // 4] = 1.0
    return mask


class RadialDepthTests(unittest.TestCase):
    def setUp(self) -> None:
        self.synthesizer = DepthSynthesizer()
        self.image = gradient_image(120, 60)

    def test_depth_matches_image_size(self) -> None:
        depth = self.synthesizer.synthesize(self.image)
        self.assertEqual(depth.size, (120, 60))
        self.assertEqual(depth.values.shape, (60, 120))

    def test_centre_is_near_and_corners_are_far(self) -> None:
        values = self.synthesizer.synthesize(self.image).values
        self.assertGreater(float(values[30, 60]), 0.95)
        self.assertLess(float(values[0, 0]), 0.01)
        self.assertLess(float(values[-1, -1]), 0.01)

    def test_range_is_measured_from_values(self) -> None:
        depth = self.synthesizer.synthesize(self.image)
        self.assertAlmostEqual(depth.range_info.minimum, float(depth.values.min()))
        self.assertAlmostEqual(depth.range_info.maximum, float(depth.values.max()))
        self.assertGreaterEqual(depth.range_info.minimum, 0.0)
        self.assertLessEqual(depth.range_info.maximum, 1.0)

    def test_depth_values_are_read_only(self) -> None:
        depth = self.synthesizer.synthesize(self.image)
        with self.assertRaises(ValueError):
            depth.values[0, 0] = 1.0

    def test_radial_geometry_is_configurable(self) -> None:
        wide = DepthSynthesizer(DepthSettings(radial_inner_fraction=0.0, radial_outer_fraction=2.0))
        values = wide.synthesize(self.image).values
        self.assertGreater(float(values[0, 0]), 0.3)

    def test_inner_radius_must_be_smaller_than_outer(self) -> None:
        with self.assertRaises(ValueError):
            DepthSettings(radial_inner_fraction=0.9, radial_outer_fraction=0.5)


class MaskDepthTests(unittest.TestCase):
    def setUp(self) -> None:
        self.synthesizer = DepthSynthesizer()
        self.image = gradient_image(120, 60)

    def test_mask_of_another_size_is_resampled(self) -> None:
        depth = self.synthesizer.synthesize(self.image, centred_square_mask(30, 15))
        self.assertEqual(depth.size, (120, 60))
        self.assertGreater(float(depth.values[30, 60]), 0.9)
        self.assertLess(float(depth.values[2, 2]), 0.05)

    def test_eight_bit_mask_is_normalised(self) -> None:
        float_depth = self.synthesizer.synthesize(self.image, centred_square_mask(120, 60))
        byte_depth = self.synthesizer.synthesize(self.image, (centred_square_mask(120, 60) * 255).astype(np.uint8))
        np.testing.assert_allclose(float_depth.values, byte_depth.values, atol=1e-5)

    def test_float_mask_overshoot_is_clamped_not_rescaled(self) -> None:
        # Soft edges from a matting model can land slightly above 1.0
        mask = centred_square_mask(120, 60) * 1.02
        depth = self.synthesizer.synthesize(self.image, mask)
        reference = self.synthesizer.synthesize(self.image, centred_square_mask(120, 60))

        self.assertGreater(float(depth.values[30, 60]), 0.9)
        np.testing.assert_allclose(depth.values, reference.values, atol=1e-5)

    def test_provider_mask_is_used(self) -> None:
        provider = CallableSegmentationProvider(lambda image: centred_square_mask(60, 30), name="square")
        via_provider = self.synthesizer.synthesize_with_provider(self.image, provider)
        direct = self.synthesizer.synthesize(self.image, centred_square_mask(60, 30))
        np.testing.assert_array_equal(via_provider.values, direct.values)

    def test_failing_provider_falls_back_to_radial(self) -> None:
        def broken(image):
            raise RuntimeError("model unavailable")

        with self.assertLogs("parallax_revive", level="WARNING") as logs:
            depth = self.synthesizer.synthesize_with_provider(self.image, CallableSegmentationProvider(broken))
        radial = self.synthesizer.synthesize(self.image)

        np.testing.assert_array_equal(depth.values, radial.values)
        self.assertTrue(any("model unavailable" in line for line in logs.output))

    def test_null_and_unusable_masks_fall_back_to_radial(self) -> None:
        radial = self.synthesizer.synthesize(self.image)
        for provider in [None, NullSegmentationProvider(),
                         CallableSegmentationProvider(lambda image: np.full((4, 4), np.nan))]:
            depth = self.synthesizer.synthesize_with_provider(self.image, provider)
            np.testing.assert_array_equal(depth.values, radial.values)


class InvalidInputTests(unittest.TestCase):
    def test_missing_or_malformed_image_raises_decode_error(self) -> None:
        synthesizer = DepthSynthesizer()
        for image in [None, np.zeros((0, 10, 3), dtype=np.float32), np.zeros(5, dtype=np.float32)]:
            with self.assertRaises(DecodeError):
                synthesizer.synthesize(image)

    def test_decode_error_hierarchy(self) -> None:
        self.assertTrue(issubclass(DecodeError, ParallaxError))
        self.assertTrue(issubclass(DecodeError, ValueError))


class DepthFieldTests(unittest.TestCase):
    def test_from_array_clamps(self) -> None:
        field = DepthField.from_array(np.array([[-0.5, 0.5], [1.5, 0.25]]))
        self.assertEqual(field.range_info.minimum, 0.0)
        self.assertEqual(field.range_info.maximum, 1.0)
        self.assertEqual(field.values.dtype, np.float32)

    def test_resized_returns_independent_field(self) -> None:
        field = DepthField.from_array(np.tile(np.linspace(0, 1, 8, dtype=np.float32), (4, 1)))
        resized = field.resized((16, 8))
        self.assertEqual(resized.size, (16, 8))
        self.assertIs(field.resized((8, 4)), field)

    def test_non_2d_values_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            DepthField.from_array(np.zeros((2, 2, 2)))


if __name__ == "__main__":
    unittest.main()
