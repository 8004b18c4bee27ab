from fastapi.testclient import TestClient

from imdaz.main import app

client = TestClient(app)


def _register_and_login(email='ana@example.com', senha='segredo1'):
    r = client.post('/users/create', json={'nome': 'Ana', 'email': email, 'senha': senha})
    assert r.status_code == 201
    login = client.post('/users/login', json={'email': email, 'senha': senha})
    assert login.status_code == 200
    return login.json()['data']['token']


def test_register_login_and_fetch():
    token = _register_and_login()
    r = client.get('/users/fetch', headers={'Authorization': f'Bearer {token}'})
    assert r.status_code == 200
    user = r.json()['data']
    assert user['email'] == 'ana@example.com'
    assert 'password_hash' not in user


def test_register_rejects_duplicates_and_bad_input():
    _register_and_login()
    r = client.post('/users/create', json={'nome': 'Outra', 'email': 'ANA@example.com', 'senha': 'segredo2'})
    assert r.status_code == 400
    assert r.json() == {'error': 'Já existe um usuário com esse e-mail.'}
    r = client.post('/users/create', json={'nome': 'Bia', 'email': 'bia@example.com', 'senha': '123'})
    assert r.status_code == 422
    assert r.json() == {'error': 'O campo senha é inválido.'}


def test_login_with_wrong_password():
    _register_and_login()
    r = client.post('/users/login', json={'email': 'ana@example.com', 'senha': 'errada123'})
    assert r.status_code == 401
    assert r.json() == {'unauthorized': 'E-mail ou senha inválidos.'}


def test_update_and_remove_user():
    token = _register_and_login()
    headers = {'Authorization': f'Bearer {token}'}
    r = client.put('/users/update', json={'nome': 'Ana Maria', 'email': 'ana@example.com', 'senha': 'novasenha'}, headers=headers)
    assert r.status_code == 200
    assert r.json() == {'data': 'Usuário atualizado com sucesso.'}
    login = client.post('/users/login', json={'email': 'ana@example.com', 'senha': 'novasenha'})
    assert login.status_code == 200

    user_id = client.get('/users/fetch', headers=headers).json()['data']['id']
    r = client.delete(f'/users/{user_id}/delete', headers=headers)
    assert r.status_code == 200
    assert r.json() == {'data': 'Usuário removido com sucesso.'}
    r = client.get('/users/fetch', headers=headers)
    assert r.status_code == 404
    assert r.json() == {'error': 'Não foi possível encontrar o usuário.'}


def test_user_routes_require_login():
    r = client.get('/users/fetch')
    assert r.status_code == 401
    r = client.delete('/users/1/delete', headers={'Authorization': 'Bearer nope'})
    assert r.status_code == 401
    assert r.json() == {'unauthorized': 'Realize o login para acessar esse recurso.'}
