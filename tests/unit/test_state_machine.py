from meeting_asr_agent.domain.enums import PipelineStage, TaskStatus
from meeting_asr_agent.domain.state_machine import (
    TRANSIENT_STATUSES,
    can_start,
    current_stage,
    infer_failed_stage,
    stage_for_in_flight,
    transition,
)


def test_transition_done_goes_to_success_status():
    assert transition(PipelineStage.transcode) == TaskStatus.transcoded
    assert transition(PipelineStage.upload) == TaskStatus.uploaded


def test_transition_submit_lands_in_polling():
    assert transition(PipelineStage.submit) == TaskStatus.polling


def test_transition_poll_running_stays_polling():
    assert transition(PipelineStage.poll, finished=False) == TaskStatus.polling


def test_transition_poll_success_is_terminal():
    assert transition(PipelineStage.poll) == TaskStatus.completed


def test_guard_matches_entry_status_only():
    assert can_start(PipelineStage.transcode, TaskStatus.recorded) is True
    assert can_start(PipelineStage.upload, TaskStatus.recorded) is False
    assert can_start(PipelineStage.poll, TaskStatus.polling) is True
    assert can_start(PipelineStage.transcode, TaskStatus.completed) is False


def test_failed_task_resumes_only_at_failed_stage():
    assert can_start(PipelineStage.poll, TaskStatus.failed, failed_stage=PipelineStage.poll) is True
    assert can_start(PipelineStage.upload, TaskStatus.failed, failed_stage=PipelineStage.poll) is False
    assert can_start(PipelineStage.submit, TaskStatus.failed) is False


def test_current_stage():
    assert current_stage(TaskStatus.recorded) == PipelineStage.transcode
    assert current_stage(TaskStatus.uploaded) == PipelineStage.submit
    assert current_stage(TaskStatus.completed) is None
    assert current_stage(TaskStatus.submitting) is None
    assert current_stage(TaskStatus.failed, failed_stage=PipelineStage.upload) == PipelineStage.upload


def test_in_flight_statuses_map_back_to_stage():
    assert stage_for_in_flight(TaskStatus.transcoding) == PipelineStage.transcode
    assert stage_for_in_flight(TaskStatus.uploading) == PipelineStage.upload
    assert stage_for_in_flight(TaskStatus.submitting) == PipelineStage.submit
    assert stage_for_in_flight(TaskStatus.polling) is None
    assert TaskStatus.polling not in TRANSIENT_STATUSES


def test_infer_failed_stage_uses_furthest_artifact():
    assert infer_failed_stage(remote_task_id="r-1", object_url="https://x", transcoded=True) == PipelineStage.poll
    assert infer_failed_stage(remote_task_id=None, object_url="https://x", transcoded=True) == PipelineStage.submit
    assert infer_failed_stage(remote_task_id=None, object_url=None, transcoded=True) == PipelineStage.upload
    assert infer_failed_stage(remote_task_id=None, object_url=None, transcoded=False) == PipelineStage.transcode
