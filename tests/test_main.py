import numpy as np
import pandas as pd
import pytest
from PIL import Image

from luminet.render import RenderResult
from main import main

FAST = ['--width', '32', '--height', '24', '--samples', '2000', '--workers', '1', '--no-progress']


def test_flux_command_writes_image_and_samples(tmp_path):
    image = tmp_path / 'flux.png'
    table = tmp_path / 'samples.csv'
    assert main(['-q', 'flux', '-i', '75', *FAST, '--samples-csv', str(table), str(image)]) == 0

    pixels = np.array(Image.open(image))
    assert pixels.shape == (24, 32, 3)
    assert pixels.max() > 0
    frame = pd.read_csv(table)
    assert {'x', 'y', 'flux', 'radius_0', 'radius_1'} <= set(frame.columns)
    assert (frame['flux'] >= 0).all()


def test_flux_range_command_writes_series(tmp_path):
    argv = ['-q', 'flux-range', '--start', '40', '--end', '80', '--step', '40', *FAST,
            '--colormap', 'gray', str(tmp_path), 'bh_']
    assert main(argv) == 0
    assert sorted(p.name for p in tmp_path.iterdir()) == ['bh_40.png', 'bh_80.png']


def test_flux_range_missing_directory_fails(tmp_path):
    argv = ['-q', 'flux-range', '--start', '40', '--end', '40', *FAST,
            str(tmp_path / 'missing'), 'bh_']
    assert main(argv) == 1


def test_isoradials_command(tmp_path):
    out = tmp_path / 'iso.png'
    curves = tmp_path / 'curves.png'
    argv = ['-q', 'isoradials', '--direct-radii', '6', '20', '--ghost-radii', '6',
            '--curves', str(curves), str(out)]
    assert main(argv) == 0
    assert out.exists() and curves.exists()


def test_dither_command(tmp_path):
    src = tmp_path / 'in.png'
    dst = tmp_path / 'out.png'
    Image.fromarray(np.tile(np.arange(0, 256, 8, dtype=np.uint8), (16, 1))).save(src)
    assert main(['-q', 'dither', '-a', 'floyd', str(src), str(dst)]) == 0
    assert set(np.unique(np.array(Image.open(dst)))) <= {0, 255}


def test_dither_missing_input_fails(tmp_path):
    assert main(['-q', 'dither', str(tmp_path / 'nope.png'), str(tmp_path / 'out.png')]) == 1


def test_flux_range_accepts_fine_steps_up_to_edge_on(tmp_path, monkeypatch):
    rendered = []

    def fake_render(blackhole, inclination, width, height, settings=None, rng=None):
        rendered.append(inclination)
        return RenderResult(inclination, np.full((height, width), inclination), None, None, {})

    monkeypatch.setattr('luminet.render.generate_flux_grid', fake_render)
    argv = ['-q', 'flux-range', '--start', '0.2', '--end', '90', '--step', '0.2', *FAST,
            str(tmp_path), 'bh_']
    assert main(argv) == 0
    assert len(rendered) == 450
    assert max(rendered) <= 90
    assert (tmp_path / 'bh_90.png').exists()
    assert (tmp_path / 'bh_0.2.png').exists()
    assert len(list(tmp_path.iterdir())) == 450


def test_unknown_output_format_rejected_before_rendering(tmp_path, monkeypatch):
    rendered = []
    monkeypatch.setattr('main.generate_flux_grid', lambda *args, **kwargs: rendered.append(args))
    with pytest.raises(SystemExit) as exc:
        main(['-q', 'flux', *FAST, str(tmp_path / 'flux.xyz')])
    assert exc.value.code == 2
    assert rendered == []
