"""
Tests for the synthesiser CLI plumbing and the membrane mask generator.
"""

import json

import numpy as np
import pytest
import scipy.io.wavfile as wavfile
from PIL import Image

from app import (
    SynthesisConfig, build_excitation, build_parser, load_config, load_mask_png,
    save_wav, synthesise,
)
from create_membrane import MEMBRANE_TYPES, create_circle, create_square, create_triangle
from fdtd import dirichlet_mask


def parse(argv):
    return build_parser().parse_args(argv)


class TestConfig:
    """Tests for merging CLI arguments with a config file."""

    def test_defaults(self):
        cfg = load_config(parse([]))
        assert cfg == SynthesisConfig()

    def test_cli_values(self):
        cfg = load_config(parse(['--dimensions', '1', '--size', '32', '--strike', '0.3',
                                 '--raw', '--sample-rate', '22050']))
        assert cfg.dimensions == 1
        assert cfg.size == 32
        assert cfg.strike == [0.3]
        assert cfg.normalize is False
        assert cfg.sample_rate == 22050

    def test_cli_overrides_config_file(self, tmp_path):
        path = tmp_path / 'synth.json'
        path.write_text(json.dumps({'size': 16, 'decay': 0.99, 'excitation': 'triangle'}))

        cfg = load_config(parse(['--config', str(path), '--size', '32']))
        assert cfg.size == 32
        assert cfg.decay == 0.99
        assert cfg.excitation == 'triangle'

    def test_unknown_config_key(self, tmp_path):
        path = tmp_path / 'synth.json'
        path.write_text(json.dumps({'pml_thickness': 5}))
        with pytest.raises(ValueError, match="Unknown config keys"):
            load_config(parse(['--config', str(path)]))

    def test_bad_excitation_in_config(self, tmp_path):
        path = tmp_path / 'synth.json'
        path.write_text(json.dumps({'excitation': 'hammer'}))
        with pytest.raises(ValueError, match="Unknown excitation"):
            load_config(parse(['--config', str(path)]))

    def test_num_samples(self):
        assert SynthesisConfig(duration=0.5, sample_rate=20).num_samples == 10
        assert SynthesisConfig(duration=0.0).num_samples == 1


class TestMaskPng:
    """Tests for reading membrane masks from PNG files."""

    def test_polarity_and_orientation(self, tmp_path):
        img = Image.new('RGB', (6, 4), (0, 0, 0))
        img.putpixel((1, 0), (255, 255, 255))  # top row of the image
        path = tmp_path / 'mask.png'
        img.save(path)

        mask = load_mask_png(str(path))
        assert mask.shape == (6, 4)
        assert mask.dtype == bool
        assert mask[1, 3]
        assert mask.sum() == 1

    def test_square_membrane(self, tmp_path):
        path = tmp_path / 'square.png'
        create_square(8).save(path)

        mask = load_mask_png(str(path))
        assert np.array_equal(mask, dirichlet_mask((8, 8)))


class TestSynthesis:

    def test_string(self):
        cfg = SynthesisConfig(dimensions=1, size=20, strike=[0.5], listen=[0.5],
                              duration=0.5, sample_rate=20)
        waveform, excitation = synthesise(cfg)
        assert len(waveform) == 10
        assert excitation.shape == (20,)
        assert np.max(np.abs(waveform)) == pytest.approx(1.0)

    def test_membrane_with_mask(self):
        mask = dirichlet_mask((12, 12))
        mask[5:7, 5:7] = False
        cfg = SynthesisConfig(strike=[0.3, 0.3], listen=[0.3, 0.3], width=0.3,
                              duration=1.0, sample_rate=50)
        waveform, excitation = synthesise(cfg, mask=mask)
        assert len(waveform) == 50
        assert np.all(excitation[~mask] == 0.0)
        assert np.all(np.abs(waveform) <= 1.0)

    def test_raw_output(self):
        cfg = SynthesisConfig(size=10, strike=[0.5, 0.5], listen=[0.5, 0.5], width=0.4,
                              duration=1.0, sample_rate=8, normalize=False)
        waveform, excitation = synthesise(cfg)
        # the first sample is taken from the grid at rest
        assert waveform[0] == 0.0

    def test_triangle_excitation(self):
        cfg = SynthesisConfig(excitation='triangle', strike=[0.5, 0.5], width=0.2)
        field = build_excitation(cfg, (11, 11))
        assert field[5, 5] == 1.0
        assert field[0, 0] == 0.0

    def test_mask_dimension_mismatch(self):
        cfg = SynthesisConfig(dimensions=1, duration=0.1, sample_rate=10)
        with pytest.raises(ValueError):
            synthesise(cfg, mask=dirichlet_mask((8, 8)))

    def test_empty_mask(self):
        cfg = SynthesisConfig(duration=0.1, sample_rate=10)
        with pytest.raises(ValueError, match="no active cells"):
            synthesise(cfg, mask=np.zeros((8, 8), dtype=bool))

    def test_unstable_courant_rejected(self):
        cfg = SynthesisConfig(courant=0.9, duration=0.1, sample_rate=10)
        with pytest.raises(ValueError, match="CFL"):
            synthesise(cfg)


class TestSaveWav:

    def test_roundtrip_header(self, tmp_path):
        filename = tmp_path / 'out' / 'membrane.wav'
        waveform = np.array([0.0, 0.5, 1.0, -1.0])
        save_wav(waveform, str(filename), sample_rate=8000)

        sr, data = wavfile.read(filename)
        assert sr == 8000
        assert data.dtype == np.int16
        assert list(data) == [0, 16383, 32767, -32767]


class TestCreateMembrane:

    def test_circle(self):
        img = create_circle(21)
        assert img.size == (21, 21)
        assert img.getpixel((0, 0)) == (0, 0, 0)
        assert img.getpixel((10, 10)) == (255, 255, 255)

    def test_triangle_apex(self):
        img = create_triangle(32)
        assert img.getpixel((16, 28)) == (255, 255, 255)
        assert img.getpixel((2, 2)) == (0, 0, 0)

    @pytest.mark.parametrize("membrane_type", sorted(MEMBRANE_TYPES))
    def test_rim_is_clamped(self, membrane_type):
        img = MEMBRANE_TYPES[membrane_type](size=16)
        pixels = np.array(img)
        assert np.all(pixels[0] == 0)
        assert np.all(pixels[-1] == 0)
        assert np.all(pixels[:, 0] == 0)
        assert np.all(pixels[:, -1] == 0)
