"""Tests for region clustering."""

import numpy as np

from tracevec.clusters import (
    ClustersView,
    ColorClusterEngine,
    RunnerConfig,
    adjacent_label_pairs,
    connected_labels,
    label_clusters,
)
from tracevec.types import KeyingAction


def runner(**kwargs):
    defaults = dict(good_min_area=0, good_max_area=10**6, is_same_color_a=0)
    defaults.update(kwargs)
    return RunnerConfig(**defaults)


class TestConnectedLabels:
    """Test cases for connected component labelling."""

    def test_raster_order_ids(self):
        """Components are numbered by their first pixel."""
        codes = np.array([
            [5, 5, 7],
            [9, 5, 7],
        ])
        labels, n = connected_labels(codes, diagonal=False)

        assert n == 3
        np.testing.assert_array_equal(labels, [[0, 0, 1], [2, 0, 1]])

    def test_diagonal_adjacency(self):
        """Corner contacts join components only with diagonal adjacency."""
        codes = np.array([
            [1, 0],
            [0, 1],
        ])
        _, n4 = connected_labels(codes, diagonal=False)
        _, n8 = connected_labels(codes, diagonal=True)

        assert n4 == 4
        assert n8 == 2

    def test_adjacent_pairs(self):
        """Neighbouring labels are reported once with a < b."""
        labels = np.array([
            [0, 0, 1],
            [2, 2, 1],
        ])
        pairs = adjacent_label_pairs(labels, diagonal=False)
        assert sorted(map(tuple, pairs.tolist())) == [(0, 1), (0, 2), (1, 2)]


class TestColorClusterEngine:
    """Test cases for hierarchical color clustering."""

    def test_uniform_image(self):
        """A uniform image is a single cluster covering everything."""
        image = np.full((4, 4, 4), 255, dtype=np.uint8)
        clusters = ColorClusterEngine().cluster(image, runner())

        view = clusters.view()
        assert len(view) == 1
        cluster = next(iter(view))
        assert cluster.area == 16
        assert cluster.rect.left_top == (0, 0)
        assert (cluster.rect.width, cluster.rect.height) == (4, 4)

    def test_stacked_emission_order(self, stripes_image):
        """Smaller layers come first, the last one covers the whole image."""
        view = ColorClusterEngine().cluster(stripes_image, runner()).view()
        areas = [c.area for c in view]

        assert areas == [9, 18, 27]
        assert areas == sorted(areas)

    def test_residue_color_excludes_emitted_children(self, stripes_image):
        """A parent keeps its own color after absorbing an emitted layer."""
        view = ColorClusterEngine().cluster(stripes_image, runner()).view()
        colors = [c.residue_color() for c in view]

        assert colors == [(40, 40, 200), (40, 200, 40), (200, 40, 40)]

    def test_composite_reproduces_input(self, stripes_image):
        """Painting in reverse emission order recreates the picture."""
        view = ColorClusterEngine().cluster(stripes_image, runner()).view()
        np.testing.assert_array_equal(view.to_color_image(), stripes_image)

    def test_speckle_absorbed(self):
        """Clusters below the minimum area are merged away silently."""
        image = np.full((10, 10, 4), 255, dtype=np.uint8)
        image[4, 4, :3] = 0

        view = ColorClusterEngine().cluster(image, runner(good_min_area=4)).view()

        assert len(view) == 1
        assert next(iter(view)).area == 100

    def test_flat_pass_without_deepening(self, two_color_image):
        """With deepen_diff 0 every seed is emitted on its own."""
        config = runner(deepen_diff=0, hollow_neighbours=0)
        view = ColorClusterEngine().cluster(two_color_image, config).view()

        assert [c.area for c in view] == [16, 16]
        assert [c.residue_color() for c in view] == [(255, 0, 0), (0, 0, 255)]

    def test_area_upper_bound(self, two_color_image):
        """Clusters larger than good_max_area are not emitted."""
        config = runner(deepen_diff=0, hollow_neighbours=0, good_max_area=15)
        view = ColorClusterEngine().cluster(two_color_image, config).view()
        assert len(view) == 0

    def test_quantized_colors_merge(self):
        """Colors equal after dropping low bits form one seed."""
        image = np.full((2, 4, 4), 255, dtype=np.uint8)
        image[:, :2, :3] = (100, 100, 100)
        image[:, 2:, :3] = (101, 101, 101)

        exact = ColorClusterEngine().cluster(image, runner(deepen_diff=0)).view()
        coarse = ColorClusterEngine().cluster(
            image, runner(deepen_diff=0, is_same_color_a=2)
        ).view()

        assert len(exact) == 2
        assert len(coarse) == 1

    def test_deterministic(self, stripes_image):
        """Identical input produces identical output."""
        a = ColorClusterEngine().cluster(stripes_image, runner()).view()
        b = ColorClusterEngine().cluster(stripes_image, runner()).view()

        assert [(c.id, c.area, c.members) for c in a] == [(c.id, c.area, c.members) for c in b]


class TestKeyClusters:
    """Test cases for key-colored regions."""

    def keyed(self):
        image = np.zeros((10, 10, 4), dtype=np.uint8)
        image[..., 3] = 255
        image[:, 5:, :3] = (255, 0, 0)
        image[:, :5, :3] = (0, 255, 0)
        image[:, :5, 3] = 0
        return image

    def test_discarded(self):
        """Key clusters are dropped with KeyingAction.DISCARD."""
        config = runner(key_color=(0, 255, 0), keying_action=KeyingAction.DISCARD)
        view = ColorClusterEngine().cluster(self.keyed(), config).view()

        assert len(view) == 1
        cluster = next(iter(view))
        assert cluster.residue_color() == (255, 0, 0)
        assert cluster.rect.left == 5

    def test_kept_and_never_merged(self):
        """Kept key clusters are emitted whole and absorb nothing."""
        config = runner(key_color=(0, 255, 0), keying_action=KeyingAction.KEEP)
        view = ColorClusterEngine().cluster(self.keyed(), config).view()

        keys = [c for c in view if c.is_key]
        others = [c for c in view if not c.is_key]
        assert len(keys) == 1
        assert keys[0].area == 50
        assert len(others) == 1
        assert others[0].area == 50

    def test_small_kept_key_emitted(self):
        """Kept key clusters below the area floor are still emitted."""
        image = np.zeros((10, 10, 4), dtype=np.uint8)
        image[..., :3] = (255, 0, 0)
        image[..., 3] = 255
        image[4:6, 4:6] = (0, 255, 0, 0)

        config = runner(good_min_area=16, key_color=(0, 255, 0), keying_action=KeyingAction.KEEP)
        view = ColorClusterEngine().cluster(image, config).view()

        keys = [c for c in view if c.is_key]
        assert len(keys) == 1
        assert keys[0].area == 4

    def test_composite_background(self):
        """Uncovered pixels take the opaque background color."""
        composite = ClustersView([], 3, 2).to_color_image((0, 255, 0))

        assert composite.shape == (2, 3, 4)
        assert np.all(composite == (0, 255, 0, 255))


class TestLabelClusters:
    """Test cases for flat component labelling."""

    def test_background_skipped(self):
        """Components of the background code are not returned."""
        mask = np.array([
            [1, 0, 0],
            [0, 0, 1],
            [0, 1, 1],
        ], dtype=bool)
        clusters = label_clusters(mask)

        assert [c.size() for c in clusters] == [1, 3]
        np.testing.assert_array_equal(clusters[1].mask(), [[False, True], [True, True]])

    def test_full_mask(self):
        """full_mask places the cropped mask back in the image."""
        labels = np.zeros((4, 4), dtype=np.int64)
        labels[1:3, 2:4] = 3
        cluster = label_clusters(labels)[0]

        np.testing.assert_array_equal(cluster.full_mask(), labels == 3)

    def test_no_background(self):
        """background=None keeps every component."""
        labels = np.array([[0, 1]])
        assert len(label_clusters(labels, background=None)) == 2
