from dataclasses import dataclass
from http import HTTPStatus

from bridgeinspect.ownership import (
    bridge_ownership_required,
    defect_ownership_required,
    drone_ownership_required,
    report_ownership_required,
)
from bridgeinspect.response import Context


@dataclass
class User:
    id: int
    role: str = "user"

    def is_admin(self):
        return self.role == "admin"


@dataclass
class Owned:
    id: int
    user_id: int

    def is_owned_by(self, user_id):
        return self.user_id == user_id


class Repo:
    def __init__(self, *items, fail=False):
        self.items = {item.id: item for item in items}
        self.fail = fail
        self.calls = 0

    def find_by_id(self, item_id):
        self.calls += 1
        if self.fail:
            raise RuntimeError("db down")
        return self.items.get(item_id)


def _mark(ctx):
    ctx.set("reached", True)


def _ctx(user, resource_id="1"):
    values = {} if user is None else {"current_user": user}
    return Context(params={"id": resource_id}, values=values)


def test_bridge_owner_gets_bridge_in_context():
    bridge = Owned(1, 10)
    ctx = _ctx(User(10)).run(bridge_ownership_required(Repo(bridge)), _mark)
    assert ctx.get("bridge") is bridge
    assert ctx.get("reached") is True


def test_bridge_other_user_forbidden():
    ctx = _ctx(User(11)).run(bridge_ownership_required(Repo(Owned(1, 10))), _mark)
    assert ctx.status == HTTPStatus.FORBIDDEN
    assert ctx.payload["message"] == "权限不足"
    assert ctx.get("reached") is None


def test_bridge_invalid_id():
    ctx = _ctx(User(10), "abc").run(bridge_ownership_required(Repo()), _mark)
    assert ctx.status == HTTPStatus.BAD_REQUEST
    assert ctx.payload["message"] == "无效的桥梁ID"


def test_negative_id_rejected():
    ctx = _ctx(User(10), "-1").run(drone_ownership_required(Repo()), _mark)
    assert ctx.status == HTTPStatus.BAD_REQUEST
    assert ctx.payload["message"] == "无效的无人机ID"


def test_bridge_lookup_failure():
    ctx = _ctx(User(10)).run(bridge_ownership_required(Repo(fail=True)), _mark)
    assert ctx.status == HTTPStatus.INTERNAL_SERVER_ERROR
    assert ctx.payload["error"] == "查询桥梁失败"


def test_admin_skips_repository():
    repo = Repo(Owned(1, 10))
    ctx = _ctx(User(99, "admin")).run(drone_ownership_required(repo), _mark)
    assert repo.calls == 0
    assert ctx.get("reached") is True
    assert ctx.get("drone") is None


def test_missing_user_unauthorized():
    ctx = _ctx(None).run(report_ownership_required(Repo()), _mark)
    assert ctx.status == HTTPStatus.UNAUTHORIZED
    assert ctx.get("reached") is None


def test_drone_missing_is_not_found():
    ctx = _ctx(User(10), "5").run(drone_ownership_required(Repo()), _mark)
    assert ctx.status == HTTPStatus.NOT_FOUND
    assert ctx.payload["message"].startswith("无人机不存在")


def test_drone_forbidden_for_other_user():
    ctx = _ctx(User(2)).run(drone_ownership_required(Repo(Owned(1, 1))), _mark)
    assert ctx.status == HTTPStatus.FORBIDDEN


def test_report_owner_gets_report():
    report = Owned(3, 4)
    ctx = _ctx(User(4), "3").run(report_ownership_required(Repo(report)), _mark)
    assert ctx.get("report") is report


def test_report_forbidden_message():
    ctx = _ctx(User(5), "3").run(report_ownership_required(Repo(Owned(3, 4))), _mark)
    assert ctx.status == HTTPStatus.FORBIDDEN
    assert ctx.payload["message"] == "无权访问此报表"


def test_report_missing():
    ctx = _ctx(User(5), "3").run(report_ownership_required(Repo()), _mark)
    assert ctx.status == HTTPStatus.NOT_FOUND
    assert ctx.payload["message"].startswith("报表")


class DefectService:
    def __init__(self, defects, bridges):
        self.defects = defects
        self.bridges = bridges
        self.calls = []

    def verify_defect_ownership(self, defect_id, user_id, is_admin):
        self.calls.append((defect_id, user_id, is_admin))
        defect = self.defects.get(defect_id)
        if defect is None:
            raise LookupError("缺陷不存在")
        owner = self.bridges.get(defect["bridge_id"])
        if owner is None:
            raise LookupError("关联桥梁不存在")
        if owner != user_id and not is_admin:
            raise PermissionError("无权访问此缺陷")
        return defect


def test_defect_owner_gets_defect():
    defect = {"id": 1, "bridge_id": 7}
    service = DefectService({1: defect}, {7: 10})
    ctx = _ctx(User(10)).run(defect_ownership_required(service), _mark)
    assert ctx.get("defect") is defect
    assert service.calls == [(1, 10, False)]


def test_defect_missing_is_not_found():
    ctx = _ctx(User(10)).run(defect_ownership_required(DefectService({}, {})), _mark)
    assert ctx.status == HTTPStatus.NOT_FOUND
    assert ctx.payload["message"].startswith("缺陷不存在")


def test_defect_missing_bridge_is_not_found():
    service = DefectService({1: {"id": 1, "bridge_id": 7}}, {})
    ctx = _ctx(User(10)).run(defect_ownership_required(service), _mark)
    assert ctx.status == HTTPStatus.NOT_FOUND
    assert ctx.payload["message"].startswith("关联桥梁不存在")


def test_defect_other_user_forbidden():
    service = DefectService({1: {"id": 1, "bridge_id": 7}}, {7: 10})
    ctx = _ctx(User(11)).run(defect_ownership_required(service), _mark)
    assert ctx.status == HTTPStatus.FORBIDDEN
    assert ctx.get("reached") is None


def test_defect_invalid_id():
    ctx = _ctx(User(10), "").run(defect_ownership_required(DefectService({}, {})), _mark)
    assert ctx.status == HTTPStatus.BAD_REQUEST
    assert ctx.payload["message"] == "无效的缺陷ID"