from kyc_case_service.core.models import Case, CaseStatus, CaseType, Document, DocumentType
from kyc_case_service.tests.factories import make_document


def draft_case(**overrides) -> Case:
    fields = {"id": "case-1", "user_id": "user-1", "case_type": CaseType.INDIVIDUAL}
    fields.update(overrides)
    return Case(**fields)


def test_upload_document(client, mock_service):
    mock_service.get_complete_case.return_value = draft_case()
    mock_service.upload_document.return_value = Document(
        id="doc-1", case_id="case-1", document_type=DocumentType.PASSPORT,
        original_filename="passport.pdf", media_type="application/pdf", size_bytes=8,
    )

    response = client.post(
        "/api/v1/cases/case-1/documents",
        data={"document_type": "passport"},
        files={"file": ("passport.pdf", b"%PDF-1.7", "application/pdf")},
    )

    assert response.status_code == 201
    assert response.json()["id"] == "doc-1"
    args = mock_service.upload_document.await_args.args
    assert args[2] == DocumentType.PASSPORT
    upload = args[3]
    assert upload.filename == "passport.pdf"
    assert upload.size_bytes == 8
    assert upload.content == b"%PDF-1.7"


def test_upload_rejected_media_type_never_reaches_service(client, mock_service):
    mock_service.get_complete_case.return_value = draft_case()

    response = client.post(
        "/api/v1/cases/case-1/documents",
        data={"document_type": "passport"},
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 422
    body = response.json()
    assert body["errors"]
    mock_service.upload_document.assert_not_called()


def test_upload_unknown_document_type_is_422(client, mock_service):
    mock_service.get_complete_case.return_value = draft_case()

    response = client.post(
        "/api/v1/cases/case-1/documents",
        data={"document_type": "selfie"},
        files={"file": ("me.png", b"\x89PNG", "image/png")},
    )

    assert response.status_code == 422
    mock_service.upload_document.assert_not_called()


def test_upload_to_submitted_case_is_409(client, mock_service):
    mock_service.get_complete_case.return_value = draft_case(status=CaseStatus.SUBMITTED)

    response = client.post(
        "/api/v1/cases/case-1/documents",
        data={"document_type": "passport"},
        files={"file": ("passport.pdf", b"%PDF", "application/pdf")},
    )

    assert response.status_code == 409


def test_delete_document(client, mock_service):
    case = draft_case()
    document = make_document(case.id)
    case.documents.append(document)
    mock_service.get_complete_case.side_effect = [case, draft_case()]

    response = client.delete(f"/api/v1/cases/case-1/documents/{document.id}")

    assert response.status_code == 200
    assert response.json()["documents"] == []
    mock_service.delete_document.assert_awaited_once()
    assert mock_service.delete_document.await_args.args[1] == document.id


def test_delete_document_not_on_case_is_404(client, mock_service):
    mock_service.get_complete_case.return_value = draft_case()

    response = client.delete("/api/v1/cases/case-1/documents/doc-unknown")

    assert response.status_code == 404
    mock_service.delete_document.assert_not_called()
