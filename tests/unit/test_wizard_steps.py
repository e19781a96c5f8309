"""
Unit tests for the wizard step actions against a faked workflow engine.
"""
import httpx
import pytest
import respx

from app.wizard import machine
from app.wizard.state import STEP_CHOOSE_SHOP, STEP_IMPORT, STEP_PREVIEW, STEP_PRINTIFY_TOKEN, initial_state
from app.wizard.steps import ImportInProgress, StepFailed, WizardSteps
from conftest import webhook

FOLDER_URL = "https://drive.google.com/drive/folders/1AbCdEf"
TOKEN = "tok_1234567890abc"


@pytest.fixture
def steps(wf_client):
    return WizardSteps(wf_client, "u1")


def folder_answer(**overrides):
    answer = {"folderId": "1AbCdEf", "fileCount": 2, "sample": [{"id": "f1", "name": "a.png"}], "importId": "imp_1"}
    answer.update(overrides)
    return answer


def at_token_step():
    return machine.folder_validated(initial_state("s1"), FOLDER_URL, folder_answer())


def at_import_step():
    state = machine.token_verified(at_token_step(), TOKEN, "ref_1", [{"id": 11, "title": "Solo"}])
    return machine.files_confirmed(state, [{"id": "f1", "name": "a.png"}])


@pytest.mark.unit
class TestFolderStep:

    @pytest.mark.parametrize("url", ["", "   ", "https://example.com/folders/abc",
                                     "https://drive.google.com/file/view"])
    def test_rejects_bad_urls_without_calling_engine(self, steps, url):
        with respx.mock(assert_all_called=False) as mock:
            route = mock.post(webhook("verify-google-folder"))
            with pytest.raises(StepFailed):
                steps.submit_folder(initial_state(), url)
            assert not route.called

    @respx.mock
    def test_valid_folder_advances(self, steps):
        respx.post(webhook("verify-google-folder")).mock(return_value=httpx.Response(200, json=folder_answer()))

        state = steps.submit_folder(initial_state("s1"), FOLDER_URL)

        assert state["currentStep"] == STEP_PRINTIFY_TOKEN
        assert state["fileCount"] == 2
        assert state["importId"] == "imp_1"

    @respx.mock
    def test_workflow_started_message_is_an_error(self, steps):
        respx.post(webhook("verify-google-folder")).mock(
            return_value=httpx.Response(200, json={"message": "Workflow was started"}))

        with pytest.raises(StepFailed, match="no validation data"):
            steps.submit_folder(initial_state(), FOLDER_URL)

    @respx.mock
    def test_malformed_answer_is_an_error(self, steps):
        respx.post(webhook("verify-google-folder")).mock(
            return_value=httpx.Response(200, json={"folderId": "x", "fileCount": "two"}))

        with pytest.raises(StepFailed, match="Invalid response format"):
            steps.submit_folder(initial_state(), FOLDER_URL)

    @respx.mock
    def test_upstream_failure_is_an_error(self, steps):
        respx.post(webhook("verify-google-folder")).mock(return_value=httpx.Response(500, text="down"))

        with pytest.raises(StepFailed, match="Failed to validate folder"):
            steps.submit_folder(initial_state(), FOLDER_URL)


@pytest.mark.unit
class TestTokenStep:

    def test_short_token_is_refused(self, steps):
        with pytest.raises(StepFailed, match="too short"):
            steps.submit_token(at_token_step(), "short")

    @respx.mock
    def test_shops_in_verify_answer(self, steps):
        respx.post(webhook("verify-printify-token")).mock(return_value=httpx.Response(200, json={
            "tokenRef": "tok_ref", "shops": [{"id": 11, "title": "A"}, {"id": 22, "title": "B"}],
        }))

        state = steps.submit_token(at_token_step(), TOKEN)

        assert state["currentStep"] == STEP_CHOOSE_SHOP
        assert state["tokenRef"] == "tok_ref"
        assert state["apiToken"] == TOKEN

    @respx.mock
    def test_shops_listed_separately(self, steps):
        respx.post(webhook("verify-printify-token")).mock(return_value=httpx.Response(200, json={"token_ref": "tok_ref"}))
        shops = respx.post(webhook("list-shops")).mock(
            return_value=httpx.Response(200, json={"shops": [{"id": 11, "title": "Solo"}]}))

        state = steps.submit_token(at_token_step(), TOKEN)

        assert shops.called
        assert state["currentStep"] == STEP_PREVIEW
        assert state["selectedShopId"] == 11

    @respx.mock
    def test_zero_shops_is_an_error(self, steps):
        respx.post(webhook("verify-printify-token")).mock(
            return_value=httpx.Response(200, json={"tokenRef": "tok_ref", "shops": []}))

        with pytest.raises(StepFailed, match="No shops"):
            steps.submit_token(at_token_step(), TOKEN)

    @pytest.mark.parametrize("answer", [
        {"shops": [{"id": 11}]},
        {"id": "tok_id", "shops": [{"id": 11}]},
        {"tokenRef": "", "shops": [{"id": 11}]},
    ])
    @respx.mock
    def test_answer_without_token_ref_is_an_error(self, steps, answer):
        respx.post(webhook("verify-printify-token")).mock(return_value=httpx.Response(200, json=answer))

        with pytest.raises(StepFailed, match=r"Expected \{tokenRef, shops\}"):
            steps.submit_token(at_token_step(), TOKEN)

    @respx.mock
    def test_shops_not_a_list_is_an_error(self, steps):
        respx.post(webhook("verify-printify-token")).mock(
            return_value=httpx.Response(200, json={"tokenRef": "tok_ref", "shops": {"id": 11}}))

        with pytest.raises(StepFailed, match="Invalid response format"):
            steps.submit_token(at_token_step(), TOKEN)


@pytest.mark.unit
class TestShopAndFilesSteps:

    @respx.mock
    def test_choose_shop_records_choice(self, steps):
        route = respx.post(webhook("log-printify-shop-id")).mock(
            return_value=httpx.Response(200, json={"id": "store_1", "name": "B"}))
        state = machine.token_verified(at_token_step(), TOKEN, "ref_1", [{"id": 11}, {"id": 22}])

        chosen = steps.choose_shop(state, 22)

        assert chosen["selectedShopId"] == 22
        assert b'"apiTokenId":"ref_1"' in route.calls.last.request.content.replace(b" ", b"")

    def test_choose_unknown_shop(self, steps):
        state = machine.token_verified(at_token_step(), TOKEN, "ref_1", [{"id": 11}, {"id": 22}])

        with pytest.raises(StepFailed):
            steps.choose_shop(state, 33)

    @respx.mock
    def test_confirm_files_fetches_when_not_listed(self, steps):
        respx.post(webhook("fetch-images")).mock(
            return_value=httpx.Response(200, json={"files": [{"id": "f1", "name": "a.png"}]}))
        state = machine.token_verified(at_token_step(), TOKEN, "ref_1", [{"id": 11}])

        confirmed = steps.confirm_files(state)

        assert confirmed["currentStep"] == STEP_IMPORT
        assert len(confirmed["files"]) == 1

    @respx.mock
    def test_confirm_empty_folder_is_an_error(self, steps):
        respx.post(webhook("fetch-images")).mock(return_value=httpx.Response(200, json={"files": []}))
        state = machine.token_verified(at_token_step(), TOKEN, "ref_1", [{"id": 11}])

        with pytest.raises(StepFailed, match="No designs"):
            steps.confirm_files(state)


@pytest.mark.unit
class TestImportStep:

    @respx.mock
    def test_successful_import_completes_and_releases_key(self, steps, wf_client):
        respx.post(webhook("import-to-printify")).mock(
            return_value=httpx.Response(200, json={"success": True, "importedCount": 1, "session": "sess_1"}))

        state = steps.run_import(at_import_step())

        assert state["isComplete"] is True
        assert state["session"] == "sess_1"
        assert "1AbCdEf-ref_1-11" not in wf_client.deduper

    @respx.mock
    def test_failed_import_records_error_and_releases_key(self, steps, wf_client):
        respx.post(webhook("import-to-printify")).mock(return_value=httpx.Response(503, text="busy"))

        state = steps.run_import(at_import_step())

        assert state["isComplete"] is False
        assert state["currentStep"] == STEP_IMPORT
        assert "Import failed" in state["error"]
        assert "1AbCdEf-ref_1-11" not in wf_client.deduper

    def test_duplicate_import_is_refused(self, steps, wf_client):
        wf_client.deduper.acquire("1AbCdEf-ref_1-11")

        with pytest.raises(ImportInProgress):
            steps.run_import(at_import_step())

    @respx.mock
    def test_unsuccessful_answer_is_a_failure(self, steps):
        respx.post(webhook("import-to-printify")).mock(
            return_value=httpx.Response(200, json={"success": False, "message": "quota"}))

        state = steps.run_import(at_import_step())

        assert state["error"] == "quota"
