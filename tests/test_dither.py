import numpy as np
import pytest
from PIL import Image

from luminet.blackhole import ConfigError
from luminet.dither import atkinson, dither, dither_file, floyd, load_grayscale, threshold_mask


@pytest.fixture
def gradient():
    return np.tile(np.linspace(0, 255, 32), (32, 1)).astype(np.uint8)


@pytest.mark.parametrize('algorithm', [floyd, atkinson])
def test_error_diffusion_is_black_and_white(gradient, algorithm):
    out = algorithm(gradient)
    assert out.dtype == np.uint8
    assert set(np.unique(out)) <= {0, 255}


def test_floyd_preserves_mean_brightness(gradient):
    out = floyd(gradient)
    assert abs(out.mean() - gradient.mean()) < 10


def test_threshold_mask_tiles_over_image():
    img = np.full((5, 5), 128, dtype=np.uint8)
    mask = np.array([[0, 200], [100, 255]], dtype=np.uint8)
    out = threshold_mask(img, mask)
    assert out.shape == (5, 5)
    np.testing.assert_array_equal(out[:2, :2], [[255, 0], [255, 0]])
    np.testing.assert_array_equal(out[2:4, 2:4], [[255, 0], [255, 0]])
    assert out[4, 4] == 255


def test_unknown_algorithm_rejected(gradient):
    with pytest.raises(ConfigError):
        dither('ordered', gradient)


def test_mask_algorithm_needs_mask(gradient):
    with pytest.raises(ConfigError):
        dither('mask', gradient)


def test_sixteen_bit_input_rescaled(tmp_path):
    path = tmp_path / 'gray16.png'
    Image.fromarray(np.array([[0, 32896, 65535]], dtype=np.uint16)).save(path)
    np.testing.assert_array_equal(load_grayscale(path), [[0, 128, 255]])


def test_dither_file(tmp_path, gradient):
    src = tmp_path / 'in.png'
    dst = tmp_path / 'out.png'
    Image.fromarray(gradient).save(src)
    dither_file('atkinson', str(src), str(dst))
    out = np.array(Image.open(dst))
    assert out.shape == gradient.shape
    assert set(np.unique(out)) <= {0, 255}
