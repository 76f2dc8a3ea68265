import threading

import pytest
from sqlalchemy import create_engine, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from core.exceptions import (
    InvalidInputError,
    InvalidReviewStatusError,
    InvalidSubmissionError,
    MissingReviewNotesError,
    NodeNotFoundError,
    ProgressNotFoundError,
    ReviewerNotAuthorizedError,
    UserNotFoundError,
)
from core.interfaces import utc_now
from models.base import Base
from models.progress import ProgressModel
from models.skill_tree import SkillNodeModel, SkillTreeModel
from models.user import UserModel
from schemas.progress import SubmissionPayload
from utils.progress_manager import ProgressManager


def _row_count(db, user_id, node_id):
    return (
        db.query(func.count(ProgressModel.id))
        .filter(ProgressModel.user_id == user_id, ProgressModel.skill_node_id == node_id)
        .scalar()
    )


def test_unlock_creates_unlocked_record(progress, student, tree_nodes):
    node = tree_nodes[2][0]

    record = progress.unlock_node(student.user_id, node.id)

    assert record.status == "unlocked"
    assert record.user_id == student.user_id
    assert record.skill_node_id == node.id


def test_unlock_advances_locked_record(db, progress, student, tree_nodes, clock):
    node = tree_nodes[2][0]
    now = clock()
    db.add(
        ProgressModel(
            user_id=student.user_id,
            skill_node_id=node.id,
            status="locked",
            created_at=now,
            updated_at=now,
        )
    )
    db.commit()

    record = progress.unlock_node(student.user_id, node.id)

    assert record.status == "unlocked"
    assert _row_count(db, student.user_id, node.id) == 1


@pytest.mark.parametrize("advanced", ["in_progress", "completed", "reviewed"])
def test_unlock_never_regresses(db, progress, student, instructor, tree_nodes, advanced):
    node = tree_nodes[2][0]
    progress.start_node(student.user_id, node.id)
    if advanced in ("completed", "reviewed"):
        record = progress.submit_node(student.user_id, node.id, notes="done")
    if advanced == "reviewed":
        progress.review_submission(record.id, instructor.user_id, "nice", "reviewed")
    before = progress.get_by_user_and_node(student.user_id, node.id)

    after = progress.unlock_node(student.user_id, node.id)

    assert after.status == advanced
    assert after.updated_at == before.updated_at
    assert _row_count(db, student.user_id, node.id) == 1


def test_start_overwrites_any_status(progress, student, instructor, tree_nodes):
    node = tree_nodes[2][0]
    record = progress.submit_node(
        student.user_id, node.id, SubmissionPayload(link="https://example.com/proof")
    )
    progress.review_submission(record.id, instructor.user_id, "ok", "reviewed")

    restarted = progress.start_node(student.user_id, node.id)

    assert restarted.status == "in_progress"
    assert restarted.id == record.id
    # Start leaves the previous submission in place
    assert restarted.submission.link == "https://example.com/proof"


def test_start_creates_record(progress, student, tree_nodes):
    record = progress.start_node(student.user_id, tree_nodes[2][1].id)
    assert record.status == "in_progress"


@pytest.mark.parametrize(
    "payload, notes",
    [
        (None, None),
        (SubmissionPayload(), ""),
        (SubmissionPayload(link="   "), "  "),
        (SubmissionPayload(file_reference="abc123", file_name="proof.pdf"), None),
    ],
)
def test_submit_requires_link_or_notes(progress, student, tree_nodes, payload, notes):
    node = tree_nodes[2][0]

    with pytest.raises(InvalidSubmissionError) as exc_info:
        progress.submit_node(student.user_id, node.id, payload, notes)

    assert isinstance(exc_info.value, InvalidInputError)
    assert exc_info.value.kind == "invalid_input"
    assert progress.get_by_user_and_node(student.user_id, node.id) is None


def test_submit_with_link_only(progress, student, tree_nodes):
    node = tree_nodes[2][0]

    record = progress.submit_node(
        student.user_id,
        node.id,
        SubmissionPayload(link="https://ctf.example/flag", file_reference="u/1/a.png", file_name="a.png"),
    )

    assert record.status == "completed"
    assert record.submitted_at is not None
    assert record.submission == SubmissionPayload(
        link="https://ctf.example/flag", file_reference="u/1/a.png", file_name="a.png"
    )
    assert record.submission_notes is None


def test_submit_with_notes_only(progress, student, tree_nodes):
    record = progress.submit_node(student.user_id, tree_nodes[2][0].id, notes="Screenshots attached")

    assert record.status == "completed"
    assert record.submission_notes == "Screenshots attached"
    assert record.submission.link is None


def test_second_submission_replaces_first(db, progress, student, tree_nodes):
    node = tree_nodes[2][0]
    first = progress.submit_node(
        student.user_id, node.id, SubmissionPayload(link="https://one.example"), "first"
    )

    second = progress.submit_node(student.user_id, node.id, notes="second")

    assert second.id == first.id
    assert second.submission.link is None
    assert second.submission_notes == "second"
    assert second.submitted_at > first.submitted_at
    assert _row_count(db, student.user_id, node.id) == 1


def test_transitions_keep_one_row_per_pair(db, progress, student, tree_nodes):
    node = tree_nodes[2][0]

    progress.unlock_node(student.user_id, node.id)
    progress.start_node(student.user_id, node.id)
    progress.submit_node(student.user_id, node.id, notes="a")
    progress.unlock_node(student.user_id, node.id)
    progress.start_node(student.user_id, node.id)
    progress.submit_node(student.user_id, node.id, notes="b")

    assert _row_count(db, student.user_id, node.id) == 1
    assert db.query(ProgressModel).count() == 1


def test_duplicate_pair_rejected_by_storage(db, progress, student, tree_nodes, clock):
    node = tree_nodes[2][0]
    progress.start_node(student.user_id, node.id)
    now = clock()

    db.add(
        ProgressModel(
            user_id=student.user_id,
            skill_node_id=node.id,
            status="unlocked",
            created_at=now,
            updated_at=now,
        )
    )
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_transitions_validate_user_and_node(progress, student, tree_nodes):
    with pytest.raises(NodeNotFoundError):
        progress.unlock_node(student.user_id, 9999)
    with pytest.raises(UserNotFoundError):
        progress.start_node("no-such-user", tree_nodes[2][0].id)


def test_review_sets_exact_status(progress, student, instructor, tree_nodes):
    node = tree_nodes[2][0]
    record = progress.submit_node(student.user_id, node.id, notes="done")

    reviewed = progress.review_submission(record.id, instructor.user_id, "Great work", "reviewed")

    assert reviewed.status == "reviewed"
    assert reviewed.reviewed_by == instructor.user_id
    assert reviewed.review_notes == "Great work"
    assert reviewed.reviewed_at is not None


def test_review_can_request_resubmission(progress, student, admin, tree_nodes):
    node = tree_nodes[2][0]
    record = progress.submit_node(student.user_id, node.id, notes="done")

    sent_back = progress.review_submission(record.id, admin.user_id, "Missing flag 3", "in_progress")
    assert sent_back.status == "in_progress"

    resubmitted = progress.submit_node(student.user_id, node.id, notes="all three flags")
    assert resubmitted.status == "completed"
    # Review fields stay until the next review overwrites them
    assert resubmitted.review_notes == "Missing flag 3"


def test_review_applies_regardless_of_current_status(progress, student, instructor, tree_nodes):
    node = tree_nodes[2][0]
    record = progress.submit_node(student.user_id, node.id, notes="done")
    progress.review_submission(record.id, instructor.user_id, "first", "reviewed")

    again = progress.review_submission(record.id, instructor.user_id, "second look", "completed")

    assert again.status == "completed"
    assert again.review_notes == "second look"


@pytest.mark.parametrize("notes", ["", "   ", None])
def test_review_requires_notes(progress, student, instructor, tree_nodes, notes):
    record = progress.submit_node(student.user_id, tree_nodes[2][0].id, notes="done")

    with pytest.raises(MissingReviewNotesError) as exc_info:
        progress.review_submission(record.id, instructor.user_id, notes, "reviewed")

    assert exc_info.value.kind == "invalid_input"
    assert progress.get_by_id(record.id).status == "completed"


def test_review_rejects_unknown_status(progress, student, instructor, tree_nodes):
    record = progress.submit_node(student.user_id, tree_nodes[2][0].id, notes="done")

    with pytest.raises(InvalidReviewStatusError):
        progress.review_submission(record.id, instructor.user_id, "notes", "unlocked")


def test_review_requires_staff_reviewer(progress, student, make_user, tree_nodes):
    other = make_user("mallory")
    record = progress.submit_node(student.user_id, tree_nodes[2][0].id, notes="done")

    with pytest.raises(ReviewerNotAuthorizedError) as exc_info:
        progress.review_submission(record.id, other.user_id, "looks fine", "reviewed")

    assert exc_info.value.kind == "forbidden"


def test_review_missing_record(progress, instructor):
    with pytest.raises(ProgressNotFoundError):
        progress.review_submission(424242, instructor.user_id, "notes", "reviewed")


def test_pending_reviews_newest_first(progress, student, make_user, tree_nodes):
    other = make_user("tina")
    nodes = tree_nodes[2]
    progress.submit_node(student.user_id, nodes[0].id, notes="first")
    progress.start_node(student.user_id, nodes[1].id)
    progress.submit_node(other.user_id, nodes[3].id, notes="second")
    progress.submit_node(student.user_id, nodes[4].id, notes="third")

    pending = progress.get_pending_reviews()

    assert [p.submission_notes for p in pending] == ["third", "second", "first"]
    assert pending[0].username == "sam"
    assert pending[0].display_name == "zero_cool"
    assert pending[0].node_title == "Second Language"
    assert pending[0].tree_name == "Coding"


def test_get_by_user_orders_by_tree_and_level(progress, student, tree_nodes):
    nodes = tree_nodes[2]
    progress.start_node(student.user_id, nodes[4].id)
    progress.start_node(student.user_id, nodes[1].id)
    progress.unlock_node(student.user_id, nodes[0].id)

    records = progress.get_by_user(student.user_id)

    assert [(r.tree_name, r.node_level) for r in records] == [
        ("Capture the Flag", 1),
        ("Capture the Flag", 2),
        ("Coding", 2),
    ]


def test_user_stats_count_existing_records_only(progress, student, instructor, tree_nodes):
    nodes = tree_nodes[2]
    progress.unlock_node(student.user_id, nodes[0].id)
    progress.start_node(student.user_id, nodes[1].id)
    done = progress.submit_node(student.user_id, nodes[2].id, notes="x")
    progress.review_submission(done.id, instructor.user_id, "ok", "reviewed")
    progress.submit_node(student.user_id, nodes[3].id, notes="y")

    stats = progress.get_user_stats(student.user_id)

    # Five nodes in the catalog, four with a record
    assert stats.total_nodes == 4
    assert stats.completed_nodes == 2
    assert stats.in_progress_nodes == 1
    assert stats.unlocked_nodes == 1


def test_user_stats_empty(progress, student, tree_nodes):
    stats = progress.get_user_stats(student.user_id)
    assert stats.model_dump() == {
        "total_nodes": 0,
        "completed_nodes": 0,
        "in_progress_nodes": 0,
        "unlocked_nodes": 0,
    }


def test_concurrent_submissions_leave_one_row(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with Session() as setup:
        setup.add(
            UserModel(
                user_id="racer",
                username="racer",
                email="racer@example.edu",
                password_hash="x",
                role="student",
                create_at=utc_now(),
            )
        )
        tree = SkillTreeModel(name="Race")
        setup.add(tree)
        setup.flush()
        node = SkillNodeModel(skill_tree_id=tree.id, level=1, title="Race node", points=10)
        setup.add(node)
        setup.commit()
        node_id = node.id

    errors = []
    barrier = threading.Barrier(4)

    def worker(i):
        try:
            barrier.wait()
            with Session() as session:
                manager = ProgressManager(session)
                for j in range(4):
                    if j % 2:
                        manager.start_node("racer", node_id)
                    else:
                        manager.submit_node("racer", node_id, notes=f"worker {i} try {j}")
        except Exception as e:  # collected and asserted below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    with Session() as check:
        assert _row_count(check, "racer", node_id) == 1
    engine.dispose()
