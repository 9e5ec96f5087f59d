import pytest
from movie_catalog.models import VideoFile, VideoMetadata
from movie_catalog.organization.grouping import group_videos
from movie_catalog.organization.duplicates import (
    KeepStrategy, codec_rank, find_duplicates, select_for_deletion,
)
from movie_catalog.organization.mover import FileRemover

def vf(path, part=0, size=100, width=0, height=0, codec=None, nfo=None):
    dir_path, file_name = path.rsplit("/", 1)
    stem = file_name.rsplit(".", 1)[0]
    base = stem.rsplit("-cd", 1)[0] if part else stem
    meta = VideoMetadata(video_codec=codec, width=width, height=height) if codec is not None else None
    return VideoFile(
        path=path, file_name=file_name, dir_path=dir_path, size=size,
        base_name=base, part_index=part, nfo_path=nfo, metadata=meta,
    )

# --- Grouping ---

def test_parts_are_grouped_and_ordered():
    cd2 = vf("/lib/Foo-cd2.mkv", part=2, size=20)
    cd1 = vf("/lib/Foo-cd1.mkv", part=1, size=10, nfo="/lib/Foo.nfo")
    groups = group_videos([cd2, cd1])

    assert len(groups) == 1
    g = groups[0]
    assert g.key == ("/lib", "Foo")
    assert g.parts == [cd1, cd2]
    assert g.primary_path == "/lib/Foo-cd1.mkv"
    assert g.part_count == 2
    assert g.total_size == 30
    assert g.nfo_path == "/lib/Foo.nfo"

def test_nfo_path_taken_from_any_part():
    cd1 = vf("/lib/Foo-cd1.mkv", part=1)
    cd2 = vf("/lib/Foo-cd2.mkv", part=2, nfo="/lib/Foo-cd2.nfo")
    assert group_videos([cd1, cd2])[0].nfo_path == "/lib/Foo-cd2.nfo"

def test_same_name_in_different_directories_are_separate_groups():
    groups = group_videos([vf("/a/Foo.mkv"), vf("/b/Foo.mkv")])
    assert [g.dir_path for g in groups] == ["/a", "/b"]

def test_grouping_is_case_sensitive():
    groups = group_videos([vf("/lib/Foo.mkv"), vf("/lib/foo.avi")])
    assert len(groups) == 2

def test_groups_sorted_by_name():
    groups = group_videos([vf("/lib/zeta.mkv"), vf("/lib/Alpha.mkv"), vf("/lib/beta.mkv")])
    assert [g.base_name for g in groups] == ["Alpha", "beta", "zeta"]

def test_single_file_orders_before_parts():
    single = vf("/lib/Foo.mkv")
    cd1 = vf("/lib/Foo-cd1.mkv", part=1)
    assert group_videos([cd1, single])[0].parts == [single, cd1]

def test_group_duration_sums_probed_parts():
    cd1 = vf("/lib/Foo-cd1.mkv", part=1, codec="h264")
    cd1.metadata.duration = 3000.0
    cd2 = vf("/lib/Foo-cd2.mkv", part=2)
    g = group_videos([cd1, cd2])[0]
    assert g.total_duration == 3000.0
    assert g.metadata is cd1.metadata

# --- Duplicates ---

def test_single_copies_in_two_directories():
    a = vf("/a/Foo.mkv", size=1)
    b = vf("/b/Foo.mkv", size=2)
    clusters = find_duplicates([a, b])

    assert len(clusters) == 1
    assert clusters[0].label == "Foo"
    # Larger file first when resolutions tie
    assert clusters[0].files == [b, a]

def test_parts_are_never_duplicates_of_each_other():
    assert find_duplicates([vf("/a/Foo-cd1.mkv", part=1), vf("/a/Foo-cd2.mkv", part=2)]) == []

def test_matching_parts_across_directories():
    files = [
        vf("/a/Foo-cd1.mkv", part=1), vf("/a/Foo-cd2.mkv", part=2),
        vf("/b/Foo-cd1.mkv", part=1), vf("/b/Foo-cd2.mkv", part=2),
    ]
    clusters = find_duplicates(files)
    assert [c.label for c in clusters] == ["Foo-cd1", "Foo-cd2"]
    assert all(len(c.files) == 2 for c in clusters)

def test_single_file_joins_lowest_part():
    single = vf("/a/Foo.mkv")
    cd1 = vf("/b/Foo-cd1.mkv", part=1)
    cd2 = vf("/b/Foo-cd2.mkv", part=2)
    clusters = find_duplicates([single, cd1, cd2])

    assert len(clusters) == 1
    assert clusters[0].label == "Foo"
    assert set(f.path for f in clusters[0].files) == {single.path, cd1.path}

def test_base_name_comparison_ignores_case():
    clusters = find_duplicates([vf("/a/Foo.mkv"), vf("/b/FOO.avi")])
    assert len(clusters) == 1
    assert clusters[0].label == "Foo"

def test_unrelated_files_produce_no_clusters():
    assert find_duplicates([vf("/a/Foo.mkv"), vf("/a/Bar.mkv")]) == []
    assert find_duplicates([]) == []

def test_clusters_sorted_by_label():
    files = [vf("/a/Zed.mkv"), vf("/b/Zed.mkv"), vf("/a/apple.mkv"), vf("/b/apple.mkv")]
    assert [c.label for c in find_duplicates(files)] == ["apple", "Zed"]

def test_members_sorted_by_resolution_then_size():
    low_big = vf("/a/Foo.mkv", size=900, width=1280, height=720, codec="h264")
    high_small = vf("/b/Foo.mkv", size=100, width=1920, height=1080, codec="h264")
    high_big = vf("/c/Foo.mkv", size=500, width=1920, height=1080, codec="h264")
    cluster = find_duplicates([low_big, high_small, high_big])[0]
    assert cluster.files == [high_big, high_small, low_big]

def test_keep_strategies():
    hd_h264 = vf("/a/Foo.mkv", size=4000, width=1920, height=1080, codec="h264")
    sd_hevc = vf("/b/Foo.mkv", size=9000, width=1280, height=720, codec="hevc")
    cluster = find_duplicates([hd_h264, sd_hevc])[0]

    assert cluster.best(KeepStrategy.HIGHER_RESOLUTION) is hd_h264
    assert cluster.best(KeepStrategy.NEWER_CODEC) is sd_hevc
    assert cluster.best(KeepStrategy.LARGER_FILE) is sd_hevc
    assert cluster.deletion_candidates("resolution") == [sd_hevc]

def test_codec_tie_breaks_on_resolution():
    small = vf("/a/Foo.mkv", width=1280, height=720, codec="hevc")
    large = vf("/b/Foo.mkv", width=3840, height=2160, codec="h265")
    cluster = find_duplicates([small, large])[0]
    assert cluster.best(KeepStrategy.NEWER_CODEC) is large

def test_exact_tie_keeps_first_member():
    a = vf("/a/Foo.mkv", size=100)
    b = vf("/b/Foo.mkv", size=100)
    cluster = find_duplicates([b, a])[0]
    for strategy in KeepStrategy:
        assert cluster.best(strategy) is cluster.files[0]

def test_codec_ranks():
    assert codec_rank(vf("/a/x.mkv", codec="AV1")) == 5
    assert codec_rank(vf("/a/x.mkv", codec="mpeg2video")) == 0
    assert codec_rank(vf("/a/x.mkv", codec="weird")) == 0
    assert codec_rank(vf("/a/x.mkv")) == -1

def test_unprobed_file_loses_to_unknown_codec():
    unprobed = vf("/a/Foo.mkv", size=10_000)
    unknown = vf("/b/Foo.mkv", size=1, codec="weird")
    cluster = find_duplicates([unprobed, unknown])[0]
    assert cluster.best(KeepStrategy.NEWER_CODEC) is unknown

def test_select_for_deletion():
    files = [
        vf("/a/Foo.mkv", size=1), vf("/b/Foo.mkv", size=2),
        vf("/a/Bar.mkv", size=5), vf("/b/Bar.mkv", size=3), vf("/c/Bar.mkv", size=4),
    ]
    selected = select_for_deletion(find_duplicates(files), KeepStrategy.LARGER_FILE)
    assert sorted(f.path for f in selected) == ["/a/Foo.mkv", "/b/Bar.mkv", "/c/Bar.mkv"]

# --- Deletion ---

def test_remover_reports_each_file(tmp_path):
    keep = tmp_path / "keep.mkv"
    gone = tmp_path / "gone.mkv"
    keep.write_bytes(b"k")
    gone.write_bytes(b"g")
    missing = tmp_path / "missing.mkv"

    report = FileRemover(show_progress=False).delete_files([str(gone), str(missing), str(gone)])

    assert not gone.exists()
    assert keep.exists()
    assert len(report.results) == 2
    assert report.success_count == 1
    assert [r.path for r in report.failed] == [str(missing)]
    assert report.failed[0].error

def test_remover_dry_run(tmp_path):
    f = tmp_path / "a.mkv"
    f.write_bytes(b"a")
    report = FileRemover(show_progress=False).delete_files([str(f)], dry_run=True)
    assert f.exists()
    assert report.success_count == 1

def test_remover_nothing_to_do():
    report = FileRemover(show_progress=False).delete_files([])
    assert report.results == []
