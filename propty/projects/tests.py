"""
Test suite for the projects module
Tests: project CRUD with nested blocks, unit generation, unit rules, bulk updates, stats, plots, timeline
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from propty.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from propty.projects.models import Project, Block, Unit
from propty.projects.utils import generate_block_units, unit_status_counts, allocation_rate
from propty.sales.exceptions import UnitUnavailable
from propty.sales.services import record_history, record_sale


class UnitUtilsTests(TestCase):
    """Test unit generation and summaries"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.project = TestDataFactory.create_project(self.company)

    def test_generate_block_units_uses_block_defaults(self):
        block = TestDataFactory.create_block(self.project, name='A', default_price=Decimal('2500000.00'))
        units = generate_block_units(block, 3)
        self.assertEqual([u.unit_number for u in units], ['A-01', 'A-02', 'A-03'])
        self.assertTrue(all(u.price == Decimal('2500000.00') for u in units))
        self.assertEqual(block.units.count(), 3)

    def test_generate_block_units_skips_existing_numbers(self):
        block = TestDataFactory.create_block(self.project, name='B')
        TestDataFactory.create_unit(self.project, unit_number='B-01', block=block)
        units = generate_block_units(block, 2)
        self.assertEqual([u.unit_number for u in units], ['B-02', 'B-03'])

    def test_generate_zero_units(self):
        block = TestDataFactory.create_block(self.project)
        self.assertEqual(generate_block_units(block, 0), [])

    def test_status_counts_and_allocation_rate(self):
        TestDataFactory.create_unit(self.project, status='available')
        TestDataFactory.create_unit(self.project, status='allocated')
        TestDataFactory.create_unit(self.project, status='sold')
        TestDataFactory.create_unit(self.project, status='reserved')
        counts = unit_status_counts(self.project.units.all())
        self.assertEqual(counts, {'available': 1, 'reserved': 1, 'allocated': 1, 'sold': 1})
        self.assertEqual(allocation_rate(counts), Decimal('50.00'))

    def test_allocation_rate_without_units(self):
        self.assertEqual(allocation_rate(unit_status_counts(Unit.objects.none())), Decimal('0.00'))


class ProjectAPITests(TestCase):
    """Test project endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company, groups=['Manager'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_project_with_blocks(self):
        data = {
            'name': 'Palm Springs',
            'location': 'Ibeju-Lekki',
            'category': 'Land',
            'blocks': [
                {'name': 'A', 'default_price': '3000000.00', 'total_units': 4},
                {'name': 'B', 'default_price': '3500000.00', 'total_units': 2},
            ]
        }
        response = self.client.post('/api/v1/projects/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_units'], 6)
        self.assertEqual(response.data['available_units'], 6)
        self.assertEqual(len(response.data['blocks']), 2)

        project = Project.objects.get(pk=response.data['id'])
        self.assertEqual(project.company, self.company)
        self.assertEqual(project.units.filter(block__name='B').first().price, Decimal('3500000.00'))

    def test_create_project_duplicate_block_names(self):
        data = {'name': 'Dup', 'location': 'Ikoyi', 'blocks': [{'name': 'A'}, {'name': 'a'}]}
        response = self.client.post('/api/v1/projects/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_completion_before_start_rejected(self):
        data = {'name': 'Late', 'location': 'Ajah', 'start_date': '2025-06-01', 'expected_completion': '2025-01-01'}
        response = self.client.post('/api/v1/projects/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('expected_completion', response.data)

    def test_list_is_company_scoped_and_filtered(self):
        TestDataFactory.create_project(self.company, name='Green Acres', status='Selling')
        TestDataFactory.create_project(self.company, name='Blue Lagoon', status='Planning')
        TestDataFactory.create_project(TestDataFactory.create_company(), name='Green Valley')

        response = self.client.get('/api/v1/projects/?search=green')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data], ['Green Acres'])

        response = self.client.get('/api/v1/projects/?status=planning')
        self.assertEqual([p['name'] for p in response.data], ['Blue Lagoon'])

    def test_price_range_filter(self):
        cheap = TestDataFactory.create_project(self.company, name='Cheap')
        TestDataFactory.create_unit(cheap, price=Decimal('500000.00'))
        pricey = TestDataFactory.create_project(self.company, name='Pricey')
        TestDataFactory.create_unit(pricey, price=Decimal('9000000.00'))

        response = self.client.get('/api/v1/projects/?price_min=1000000')
        self.assertEqual([p['name'] for p in response.data], ['Pricey'])

    def test_delete_project_with_allocated_units_conflicts(self):
        project = TestDataFactory.create_project(self.company)
        TestDataFactory.create_unit(project, status='allocated')
        response = self.client.delete(f'/api/v1/projects/{project.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Project.objects.filter(pk=project.id).exists())

    def test_delete_empty_project(self):
        project = TestDataFactory.create_project(self.company)
        TestDataFactory.create_unit(project)
        response = self.client.delete(f'/api/v1/projects/{project.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_project_stats(self):
        project = TestDataFactory.create_project(self.company)
        unit = TestDataFactory.create_unit(project, status='allocated')
        TestDataFactory.create_unit(project)
        client = TestDataFactory.create_client(self.company)
        TestDataFactory.create_payment(client, amount=Decimal('250000.00'), unit=unit)
        TestDataFactory.create_payment(client, amount=Decimal('50000.00'), unit=unit, payment_type='refund')

        response = self.client.get(f'/api/v1/projects/{project.id}/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_units'], 2)
        self.assertEqual(response.data['allocated_units'], 1)
        self.assertEqual(response.data['revenue'], Decimal('250000.00'))
        self.assertEqual(response.data['allocation_rate'], Decimal('50.00'))

    def test_projects_stats(self):
        TestDataFactory.create_unit(TestDataFactory.create_project(self.company, status='Selling'))
        response = self.client.get('/api/v1/projects/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_projects'], 1)
        self.assertEqual(response.data['projects_by_status']['Selling'], 1)
        self.assertEqual(response.data['units_by_status']['available'], 1)


class BlockAPITests(TestCase):
    """Test block endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.project = TestDataFactory.create_project(self.company)

    def test_create_block_generates_units(self):
        data = {'name': 'C', 'default_price': '1200000.00', 'total_units': 5}
        response = self.client.post(f'/api/v1/projects/{self.project.id}/blocks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['units_count'], 5)
        self.assertEqual(Block.objects.get(pk=response.data['id']).units.count(), 5)

    def test_duplicate_block_name_rejected(self):
        TestDataFactory.create_block(self.project, name='C')
        response = self.client.post(f'/api/v1/projects/{self.project.id}/blocks/', {'name': 'c'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_block_with_sold_units_conflicts(self):
        block = TestDataFactory.create_block(self.project)
        TestDataFactory.create_unit(self.project, block=block, status='sold')
        response = self.client.delete(f'/api/v1/projects/{self.project.id}/blocks/{block.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)


class UnitAPITests(TestCase):
    """Test unit and plot endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.project = TestDataFactory.create_project(self.company)

    def test_create_unit(self):
        data = {'unit_number': 'P-100', 'price': '4000000.00', 'size': '600sqm'}
        response = self.client.post(f'/api/v1/projects/{self.project.id}/units/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'available')

    def test_duplicate_unit_number_rejected(self):
        TestDataFactory.create_unit(self.project, unit_number='P-100')
        response = self.client.post(f'/api/v1/projects/{self.project.id}/units/', {'unit_number': 'P-100'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_set_allocated_directly(self):
        unit = TestDataFactory.create_unit(self.project)
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/units/{unit.id}/', {'status': 'allocated'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        unit.refresh_from_db()
        self.assertEqual(unit.status, 'available')

    def test_cannot_release_allocated_unit_directly(self):
        ada = TestDataFactory.create_client(self.company, first_name='Ada')
        unit = TestDataFactory.create_unit(self.project)
        allocation = TestDataFactory.create_allocation(self.user, ada, unit)
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/units/{unit.id}/', {'status': 'available'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        unit.refresh_from_db()
        self.assertEqual(unit.status, 'allocated')
        self.assertEqual(unit.client, ada)

        # The unit stays out of reach of a second sale
        ben = TestDataFactory.create_client(self.company, first_name='Ben')
        with self.assertRaises(UnitUnavailable):
            record_sale(self.user, {'client': ben, 'project': self.project, 'unit': unit,
                                    'initial_payment': Decimal('100000.00')})
        allocation.refresh_from_db()
        self.assertEqual(allocation.status, 'active')

    def test_cannot_release_reserved_unit_directly(self):
        unit = TestDataFactory.create_unit(self.project, status='reserved')
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/units/{unit.id}/', {'status': 'sold'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        unit.refresh_from_db()
        self.assertEqual(unit.status, 'reserved')

    def test_cannot_reserve_unit_directly(self):
        unit = TestDataFactory.create_unit(self.project)
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/units/{unit.id}/', {'status': 'reserved'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mark_unit_sold_and_back(self):
        unit = TestDataFactory.create_unit(self.project)
        url = f'/api/v1/projects/{self.project.id}/units/{unit.id}/'
        response = self.client.patch(url, {'status': 'sold'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.patch(url, {'status': 'available'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_bulk_update_cannot_release_allocated_unit(self):
        ada = TestDataFactory.create_client(self.company)
        unit = TestDataFactory.create_unit(self.project)
        TestDataFactory.create_allocation(self.user, ada, unit)
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/units/bulk/',
                                     {'units': [{'id': unit.id, 'status': 'available'}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data['errors']['0'])
        unit.refresh_from_db()
        self.assertEqual(unit.status, 'allocated')

    def test_block_from_other_project_rejected(self):
        other_block = TestDataFactory.create_block(TestDataFactory.create_project(self.company))
        unit = TestDataFactory.create_unit(self.project)
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/units/{unit.id}/',
                                     {'block': other_block.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_reserved_unit_conflicts(self):
        unit = TestDataFactory.create_unit(self.project, status='reserved')
        response = self.client.delete(f'/api/v1/plots/{unit.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_bulk_update(self):
        first = TestDataFactory.create_unit(self.project)
        second = TestDataFactory.create_unit(self.project)
        data = {'units': [
            {'id': first.id, 'price': '7000000.00'},
            {'id': second.id, 'size': '450sqm'},
        ]}
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/units/bulk/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated'], 2)
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(first.price, Decimal('7000000.00'))
        self.assertEqual(second.size, '450sqm')

    def test_bulk_update_is_all_or_nothing(self):
        first = TestDataFactory.create_unit(self.project, price=Decimal('1000000.00'))
        foreign = TestDataFactory.create_unit(TestDataFactory.create_project(self.company))
        data = {'units': [
            {'id': first.id, 'price': '7000000.00'},
            {'id': foreign.id, 'price': '1.00'},
        ]}
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/units/bulk/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('1', response.data['errors'])
        first.refresh_from_db()
        self.assertEqual(first.price, Decimal('1000000.00'))

    def test_plot_list_filters(self):
        TestDataFactory.create_unit(self.project, unit_number='A-01', status='available')
        TestDataFactory.create_unit(self.project, unit_number='A-02', status='reserved')
        TestDataFactory.create_unit(TestDataFactory.create_project(TestDataFactory.create_company()))

        response = self.client.get('/api/v1/plots/')
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/v1/plots/?status=reserved')
        self.assertEqual([u['unit_number'] for u in response.data], ['A-02'])
        response = self.client.get(f'/api/v1/plots/project/{self.project.id}/?search=a-01')
        self.assertEqual([u['unit_number'] for u in response.data], ['A-01'])

    def test_unit_timeline(self):
        unit = TestDataFactory.create_unit(self.project)
        client = TestDataFactory.create_client(self.company)
        record_history(unit=unit, client=client, event='payment_received', description='Deposit',
                       amount=Decimal('10.00'), user=self.user)
        response = self.client.get(f'/api/v1/units/{unit.id}/timeline/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['unit']['id'], unit.id)
        self.assertEqual([e['event'] for e in response.data['events']], ['payment_received'])
