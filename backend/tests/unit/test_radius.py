import pytest

from bookswap.domain.geosearch.radius import (
	ALLOWED_RADII_KM,
	MAX_INDEX,
	radius_to_slider_index,
	slider_index_to_radius,
	snap_radius,
)


def test_scale_shape():
	assert ALLOWED_RADII_KM[:10] == tuple(range(1, 11))
	assert ALLOWED_RADII_KM[10:18] == (15, 20, 25, 30, 35, 40, 45, 50)
	assert ALLOWED_RADII_KM[18:] == (60, 70, 80, 90, 100)
	assert len(ALLOWED_RADII_KM) == 23
	assert MAX_INDEX == 22


def test_index_to_radius_clamps():
	assert slider_index_to_radius(-5) == 1
	assert slider_index_to_radius(0) == 1
	assert slider_index_to_radius(4) == 5
	assert slider_index_to_radius(MAX_INDEX) == 100
	assert slider_index_to_radius(500) == 100


@pytest.mark.parametrize(
	"radius,expected",
	[
		(5, 5),
		(12, 10),
		(13, 15),
		(55, 50),
		(57, 60),
		(250, 100),
		(0, 1),
	],
)
def test_snap_radius(radius, expected):
	assert snap_radius(radius) == expected


def test_exact_values_map_back_to_their_index():
	for idx, radius in enumerate(ALLOWED_RADII_KM):
		assert radius_to_slider_index(radius) == idx


@pytest.mark.parametrize(
	"radius,expected",
	[
		(1.5, 1),
		(5.5, 5),
		(12.5, 10),
		(47.5, 45),
		(55, 50),
		(95, 90),
	],
)
def test_ties_go_to_the_smaller_radius(radius, expected):
	assert snap_radius(radius) == expected


def test_index_never_decreases_as_radius_grows():
	indices = [radius_to_slider_index(tenths / 10) for tenths in range(0, 1101)]
	assert indices == sorted(indices)
	assert indices[0] == 0
	assert indices[-1] == MAX_INDEX
