from __future__ import annotations

import numpy as np

from jewelcase.frames import FRAME_OFFSET, FRAME_SIZE, TARGET_SIZE, add_jewel_case_frame, compute_offset, get_frame

from conftest import solid


def test_frame_geometry() -> None:
    assert FRAME_SIZE == (884, 777)
    assert TARGET_SIZE == (750, 750)
    assert FRAME_OFFSET == (98, 13)


def test_frame_is_rendered_once() -> None:
    frame = get_frame()
    assert frame.size == FRAME_SIZE
    assert frame.mode == 'RGB'
    assert get_frame() is frame


def test_fixed_offset_without_randomness(rng) -> None:
    assert compute_offset(False, rng) == (98, 13)
    assert compute_offset() == (98, 13)


def test_random_offset_stays_in_jitter_window(rng) -> None:
    offsets = [compute_offset(True, rng) for _ in range(2000)]
    xs = [x for x, _ in offsets]
    ys = [y for _, y in offsets]
    assert min(xs) == 90 and max(xs) == 106
    assert min(ys) == 8 and max(ys) == 18


def test_opaque_art_covers_insert_window() -> None:
    out = add_jewel_case_frame(solid((255, 0, 0, 255)))
    assert out.size == FRAME_SIZE
    assert out.mode == 'RGB'
    assert out.getpixel((98, 13)) == (255, 0, 0)
    assert out.getpixel((98 + 749, 13 + 749)) == (255, 0, 0)
    # Outside the window the case shows through
    assert out.getpixel((20, 400)) == get_frame().getpixel((20, 400))
    assert out.getpixel((97, 13)) == get_frame().getpixel((97, 13))


def test_transparent_art_leaves_frame_visible() -> None:
    out = add_jewel_case_frame(solid((255, 0, 0, 0)), offset=(100, 10))
    assert np.array_equal(np.array(out), np.array(get_frame()))


def test_source_over_blend() -> None:
    out = add_jewel_case_frame(solid((255, 255, 255, 128)), offset=(98, 13))
    under = get_frame().getpixel((400, 400))
    for got, dst in zip(out.getpixel((400, 400)), under):
        expected = 255 * 128 / 255 + dst * (1 - 128 / 255)
        assert abs(got - expected) <= 1


def test_compositing_never_touches_shared_frame() -> None:
    before = np.array(get_frame())
    add_jewel_case_frame(solid((0, 255, 0, 255)), offset=(90, 8))
    assert np.array_equal(np.array(get_frame()), before)
