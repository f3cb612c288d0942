from app.studylinker import create_app

app = create_app()
