import json
import queue
from datetime import timedelta

from flask import Flask, Response, g, jsonify, render_template, request, session, stream_with_context
from loguru import logger

from analyzer import Analyzer, AnalyzerState
from auth import AnonymousAuth, SessionBootstrap
from config import Settings, setup_logging
from feed import LiveFeed
from llm import build_client
from models import db
from risk import CONTENT_TYPE_LABELS, content_type_label, risk_band
from store import DocumentStore

KEEPALIVE_SECONDS = 15


def create_app(settings=None, llm_client=None):
    """Build the web app and the collaborators it talks to.

    Without ``DATABASE_URL`` there is no store and no auth: the app runs in demo
    mode with the static feed, but analyses still work.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings)

    app = Flask(__name__)
    app.config['SECRET_KEY'] = settings.secret_key
    app.permanent_session_lifetime = timedelta(days=7)

    store = None
    if settings.backend_configured:
        app.config['SQLALCHEMY_DATABASE_URI'] = settings.database_url
        app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
        db.init_app(app)
        with app.app_context():
            db.create_all()
        store = DocumentStore(db)

    client = llm_client if llm_client is not None else build_client(settings)
    analyzer = Analyzer(
        client,
        settings.openai_model,
        store=store,
        path=settings.searches_path,
        persist_failure_is_error=settings.persist_failure_is_error,
    )
    app.extensions['media_advisor'] = {'settings': settings, 'store': store, 'analyzer': analyzer}

    app.add_template_filter(risk_band, 'risk_band')
    app.add_template_filter(content_type_label, 'content_type_label')

    logger.info(
        f"Starting media advisor (model={settings.openai_model}, "
        f"backend={'on' if store else 'demo'}, ai_key={'set' if client else 'missing'})"
    )

    def new_feed(on_change=None):
        return LiveFeed(
            store,
            settings.searches_path,
            session=g.get('user_session'),
            backend_configured=settings.backend_configured,
            on_change=on_change,
        )

    def session_status():
        if g.get('user_session') is not None:
            return {'state': 'active', 'label': 'Misafir Girişi Aktif'}
        if settings.backend_configured:
            return {'state': 'connecting', 'label': 'Bağlanıyor...'}
        return {'state': 'demo', 'label': 'Demo Modu (DB Yok)'}

    @app.before_request
    def bootstrap_session():
        g.user_session = None
        if store is None or request.endpoint == 'static':
            return
        bootstrap = SessionBootstrap(AnonymousAuth(db, uid=session.get('uid')))
        g.bootstrap = bootstrap
        # Only a page load mints an identity; other routes resume the cookie's uid.
        g.user_session = bootstrap.start(create=request.endpoint == 'index')
        if g.user_session is not None:
            session.permanent = True
            session['uid'] = g.user_session.uid

    @app.teardown_request
    def stop_session(exc):
        bootstrap = g.pop('bootstrap', None)
        if bootstrap is not None:
            bootstrap.stop()

    @app.route('/')
    def index():
        with new_feed() as feed:
            records = feed.records
        return render_template(
            'index.html',
            records=records,
            status=session_status(),
            content_types=CONTENT_TYPE_LABELS,
            ai_configured=analyzer.client is not None,
        )

    def run_analysis(query, content_type):
        state = AnalyzerState(content_type=content_type)
        ran = analyzer.analyze(state, query, content_type, session=g.user_session)
        if not ran and state.error is None:
            return state, 204
        if not ran:
            return state, 400
        return state, 502 if state.error else 200

    @app.route('/analyze', methods=['POST'])
    def analyze():
        state, status = run_analysis(request.form.get('query', ''), request.form.get('content_type', 'movie'))
        if status == 204:
            return '', 204
        return render_template('analysis_partial.html', state=state), status

    @app.route('/api/analyze', methods=['POST'])
    def api_analyze():
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return jsonify({'error': 'JSON body must be an object'}), 400
        query = data.get('query', '')
        content_type = data.get('content_type', 'movie')
        if not isinstance(query, str) or not isinstance(content_type, str):
            return jsonify({'error': 'query and content_type must be strings'}), 400
        state, status = run_analysis(query, content_type)
        if status == 204:
            return '', 204
        return jsonify({
            'contentType': state.content_type,
            'result': state.result.to_dict() if state.result else None,
            'error': state.error,
            'recordId': state.record_id,
        }), status

    @app.route('/api/searches')
    def api_searches():
        with new_feed() as feed:
            return jsonify({
                'demo': feed.demo,
                'searches': [r.to_dict() for r in feed.records],
            })

    @app.route('/searches/stream')
    def stream_searches():
        updates = queue.Queue()
        feed = new_feed(on_change=updates.put)

        @stream_with_context
        def events():
            try:
                feed.start()
                while True:
                    try:
                        records = updates.get(timeout=KEEPALIVE_SECONDS)
                    except queue.Empty:
                        yield ': keepalive\n\n'
                        continue
                    html = render_template('feed_partial.html', records=records)
                    yield f"data: {json.dumps({'html': html})}\n\n"
                    if feed.demo:
                        break
            finally:
                feed.stop()

        return Response(events(), mimetype='text/event-stream', headers={'Cache-Control': 'no-cache'})

    return app


if __name__ == '__main__':
    settings = Settings.from_env()
    app = create_app(settings)
    app.run(host=settings.host, port=settings.port, debug=settings.debug, threaded=True)
