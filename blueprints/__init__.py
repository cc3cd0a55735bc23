"""
Blueprint registration for SchoolHub.

Every blueprint declares full /api/... paths on its routes, so none take a
URL prefix here.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.users import bp as users_bp
    from blueprints.classes import bp as classes_bp
    from blueprints.courses import bp as courses_bp
    from blueprints.quizzes import bp as quizzes_bp
    from blueprints.attempts import bp as attempts_bp
    from blueprints.fees import bp as fees_bp
    from blueprints.salaries import bp as salaries_bp
    from blueprints.announcements import bp as announcements_bp
    from blueprints.assignments import bp as assignments_bp
    from blueprints.timetables import bp as timetables_bp
    from blueprints.events import bp as calendar_bp

    app.register_blueprint(users_bp)
    app.register_blueprint(classes_bp)
    app.register_blueprint(courses_bp)
    app.register_blueprint(quizzes_bp)
    app.register_blueprint(attempts_bp)
    app.register_blueprint(fees_bp)
    app.register_blueprint(salaries_bp)
    app.register_blueprint(announcements_bp)
    app.register_blueprint(assignments_bp)
    app.register_blueprint(timetables_bp)
    app.register_blueprint(calendar_bp)
