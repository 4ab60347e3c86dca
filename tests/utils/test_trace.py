from pymsxview.utils.trace import SyncRecorder


def test_sync_recorder_overwrites_old_entries():
    recorder = SyncRecorder(capacity=2)

    recorder.record("status", "cpu", pc=0x4000)
    recorder.record("delta", "memory", entries=3, changed=2, pc=0x4001, fingerprint="123")
    recorder.record("delta", "vram", entries=1, changed=0, pc=0x4002, fingerprint="456", note="resync")

    lines = list(recorder.format_entries())
    assert len(recorder) == 2
    assert len(lines) == 2
    assert "pc=4001" in lines[0]
    assert "hash=123" in lines[0]
    assert "pc=4002" in lines[1]
    assert "flags=resync" in lines[1]


def test_sync_recorder_marks_rejections():
    recorder = SyncRecorder(1)
    recorder.record("delta", "memory", entries=2, accepted=False, note="PatchRangeError")

    lines = list(recorder.format_entries())
    assert len(lines) == 1
    assert "pc=----" in lines[0]
    assert "flags=REJECTED,PatchRangeError" in lines[0]


def test_sync_recorder_limit():
    recorder = SyncRecorder(8)
    for pc in range(5):
        recorder.record("status", "cpu", pc=pc)

    assert [entry.pc for entry in recorder.entries(2)] == [3, 4]
    assert recorder.last_entry().pc == 4
